"""Shared pytest fixtures."""

import os
from typing import Optional

import pytest
from aws_cdk import App, Stack
from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_ecs as ecs
from aws_cdk.assertions import Template

from webstack.stacks.web_stack import WebStack, WebStackConfig

CERTIFICATE_ARN = (
    "arn:aws:acm:us-east-1:123456789012:certificate/"
    "11111111-2222-3333-4444-555555555555"
)


@pytest.fixture(scope="session", autouse=True)
def configure_test_environment():
    """Keep synthesis offline and region-stable."""
    test_env = {
        "AWS_DEFAULT_REGION": "us-east-1",
        "CDK_DEFAULT_REGION": "us-east-1",
        "CDK_DEFAULT_ACCOUNT": "123456789012",
        "CDK_DISABLE_VERSION_CHECK": "true",
        "AWS_ACCESS_KEY_ID": "testing",
        "AWS_SECRET_ACCESS_KEY": "testing",
    }
    for key, value in test_env.items():
        os.environ.setdefault(key, value)


@pytest.fixture
def cluster_stack():
    """A bare stack holding a VPC and cluster for testing one service at a time."""
    app = App()
    stack = Stack(app, "TestStack")
    vpc = ec2.Vpc(stack, "TestVpc", max_azs=2)
    cluster = ecs.Cluster(stack, "TestCluster", vpc=vpc)
    return stack, cluster


def synth_web_stack(
    config: Optional[WebStackConfig] = None,
    stack_id: str = "PhpFpmNginxWebStack",
    context: Optional[dict] = None,
) -> Template:
    app = App(context=context or {})
    stack = WebStack(app, stack_id, config=config or WebStackConfig())
    return Template.from_stack(stack)


def security_group_id(template: Template, description: str) -> str:
    groups = template.find_resources(
        "AWS::EC2::SecurityGroup",
        {"Properties": {"GroupDescription": description}},
    )
    assert len(groups) == 1, f"expected one security group '{description}'"
    return next(iter(groups))


def load_balancer_id(template: Template, scheme: str) -> str:
    balancers = template.find_resources(
        "AWS::ElasticLoadBalancingV2::LoadBalancer",
        {"Properties": {"Scheme": scheme}},
    )
    assert len(balancers) == 1, f"expected one {scheme} load balancer"
    return next(iter(balancers))


def container_definition(template: Template, container_name: str) -> dict:
    for task in template.find_resources("AWS::ECS::TaskDefinition").values():
        for container in task["Properties"]["ContainerDefinitions"]:
            if container["Name"] == container_name:
                return container
    raise AssertionError(f"no container named {container_name}")


def environment_of(container: dict) -> dict:
    return {item["Name"]: item["Value"] for item in container.get("Environment", [])}
