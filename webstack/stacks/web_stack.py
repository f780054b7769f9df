"""
AWS CDK stack for the PHP-FPM / Nginx web stack.

Provisions:
  - VPC with public / private subnets
  - ECS cluster (Fargate capacity)
  - Backend service: php-fpm behind an internal NLB (TCP :9000)
  - Edge service: nginx behind a public ALB (HTTP :80, optional HTTPS :443),
    pointed at the backend NLB through APP_HOST / APP_PORT
  - Auto-scaling on both services (2–5 tasks by default)

The backend is built first: the edge service cannot be defined until the
backend load balancer's DNS name exists.

Runtime configuration injected through CDK context keys:
  certificate_arn – ACM certificate ARN for the public HTTPS listener (optional)
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Optional

from aws_cdk import CfnOutput, RemovalPolicy, Stack
from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_ecs as ecs
from aws_cdk import aws_logs as logs
from constructs import Construct

from webstack.config import REPO_ROOT
from webstack.exceptions.stack_exceptions import UnknownEnvironmentError
from webstack.logging_config import get_logger
from webstack.schemas.service import NetworkSpec, ServiceSpec, backend_spec, edge_spec
from webstack.stacks.backend_service import BackendService
from webstack.stacks.edge_service import EdgeService

logger = get_logger(__name__)


@dataclasses.dataclass
class WebStackConfig:
    environment: str = "development"
    network: NetworkSpec = dataclasses.field(default_factory=NetworkSpec)
    backend: ServiceSpec = dataclasses.field(default_factory=backend_spec)
    edge: ServiceSpec = dataclasses.field(default_factory=edge_spec)
    assets_dir: Path = REPO_ROOT
    certificate_arn: Optional[str] = None
    log_retention: logs.RetentionDays = logs.RetentionDays.ONE_MONTH

    @property
    def removal_policy(self) -> RemovalPolicy:
        return RemovalPolicy.RETAIN if self.environment == "prod" else RemovalPolicy.DESTROY


def config_for_environment(environment: str, **overrides) -> WebStackConfig:
    if environment == "development":
        config = WebStackConfig(
            environment=environment,
            network=NetworkSpec(vpc_cidr="10.2.0.0/16", max_azs=2),
            log_retention=logs.RetentionDays.ONE_WEEK,
        )
    elif environment == "staging":
        config = WebStackConfig(
            environment=environment,
            network=NetworkSpec(vpc_cidr="10.1.0.0/16", max_azs=2),
        )
    elif environment == "prod":
        config = WebStackConfig(
            environment=environment,
            network=NetworkSpec(vpc_cidr="10.0.0.0/16", max_azs=3),
            backend=backend_spec(cpu=512, memory_mib=1024),
            edge=edge_spec(cpu=512, memory_mib=1024),
            log_retention=logs.RetentionDays.THREE_MONTHS,
        )
    else:
        raise UnknownEnvironmentError(
            f"No stack configuration for environment '{environment}'. "
            "Expected one of: development, staging, prod."
        )
    return dataclasses.replace(config, **overrides)


class WebStack(Stack):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: WebStackConfig,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.config = config

        certificate_arn = (
            self.node.try_get_context("certificate_arn") or config.certificate_arn
        )

        self.vpc = self._create_network(config.network)
        self.cluster = ecs.Cluster(
            self,
            "EcsCluster",
            vpc=self.vpc,
            cluster_name=f"{construct_id}-{config.environment}",
            container_insights=True,
        )

        # Backend first: its NLB address is an input to the edge service
        self.backend = BackendService(
            self,
            "Backend",
            cluster=self.cluster,
            spec=config.backend,
            assets_dir=config.assets_dir,
            log_retention=config.log_retention,
            removal_policy=config.removal_policy,
        )
        self.edge = EdgeService(
            self,
            "Edge",
            cluster=self.cluster,
            spec=config.edge,
            backend_address=self.backend.load_balancer_address,
            backend_port=self.backend.port,
            assets_dir=config.assets_dir,
            certificate_arn=certificate_arn,
            log_retention=config.log_retention,
            removal_policy=config.removal_policy,
        )
        self.backend.allow_from(self.edge.service)

        self._publish_outputs()
        logger.info(
            "web_stack_composed",
            stack=construct_id,
            environment=config.environment,
            https=bool(certificate_arn),
        )

    def _create_network(self, network: NetworkSpec) -> ec2.Vpc:
        return ec2.Vpc(
            self,
            "Vpc",
            ip_addresses=ec2.IpAddresses.cidr(network.vpc_cidr),
            max_azs=network.max_azs,
            nat_gateways=network.nat_gateways,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="Public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=network.cidr_mask,
                ),
                ec2.SubnetConfiguration(
                    name="Private",
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                    cidr_mask=network.cidr_mask,
                ),
            ],
        )

    def _publish_outputs(self) -> None:
        CfnOutput(
            self,
            "EdgeLoadBalancerDns",
            value=self.edge.load_balancer_dns_name,
            description="Public ALB DNS name",
        )
        CfnOutput(
            self,
            "EdgeServiceUrl",
            value=self.edge.url,
            description="Public service URL",
        )
        CfnOutput(
            self,
            "BackendLoadBalancerDns",
            value=self.backend.load_balancer_address,
            description="Internal NLB DNS name",
        )
        CfnOutput(
            self,
            "EcsClusterName",
            value=self.cluster.cluster_name,
            description="ECS cluster name",
        )
