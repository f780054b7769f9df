import pytest
from aws_cdk import aws_ec2 as ec2
from aws_cdk.assertions import Match, Template

from tests.conftest import container_definition, security_group_id
from webstack.config import REPO_ROOT
from webstack.exceptions.stack_exceptions import (
    InvalidHealthCheckError,
    InvalidReplicaRangeError,
)
from webstack.schemas.service import (
    HealthCheckProtocol,
    HealthCheckSpec,
    ScalingSpec,
    backend_spec,
)
from webstack.stacks.backend_service import BackendService


def make_backend(stack, cluster, **overrides) -> BackendService:
    return BackendService(
        stack,
        "Backend",
        cluster=cluster,
        spec=backend_spec(**overrides),
        assets_dir=REPO_ROOT,
    )


@pytest.fixture
def backend(cluster_stack):
    stack, cluster = cluster_stack
    return make_backend(stack, cluster)


@pytest.fixture
def template(cluster_stack, backend):
    stack, _ = cluster_stack
    return Template.from_stack(stack)


class TestBackendLoadBalancer:
    def test_internal_network_load_balancer(self, template):
        template.resource_count_is("AWS::ElasticLoadBalancingV2::LoadBalancer", 1)
        template.has_resource_properties(
            "AWS::ElasticLoadBalancingV2::LoadBalancer",
            {"Scheme": "internal", "Type": "network"},
        )

    def test_tcp_listener_on_backend_port(self, template):
        template.has_resource_properties(
            "AWS::ElasticLoadBalancingV2::Listener",
            {"Port": 9000, "Protocol": "TCP"},
        )

    def test_tcp_health_check(self, template):
        template.has_resource_properties(
            "AWS::ElasticLoadBalancingV2::TargetGroup",
            {
                "Port": 9000,
                "Protocol": "TCP",
                "TargetType": "ip",
                "HealthCheckProtocol": "TCP",
                "HealthCheckIntervalSeconds": 30,
                "HealthyThresholdCount": 3,
                "UnhealthyThresholdCount": 3,
            },
        )

    def test_load_balancer_has_own_security_group(self, template):
        nlb_sg = security_group_id(template, "backend internal NLB")
        template.has_resource_properties(
            "AWS::ElasticLoadBalancingV2::LoadBalancer",
            {"SecurityGroups": [{"Fn::GetAtt": [nlb_sg, "GroupId"]}]},
        )

    def test_exposes_address_and_port(self, backend):
        assert isinstance(backend.load_balancer_address, str)
        assert backend.load_balancer_address
        assert backend.port == 9000


class TestBackendTask:
    def test_php_fpm_container(self, template):
        container = container_definition(template, "php-fpm")
        assert container["PortMappings"][0]["ContainerPort"] == 9000
        assert container["Essential"] is True

    def test_log_stream_prefix_uses_stack_id(self, template):
        container = container_definition(template, "php-fpm")
        options = container["LogConfiguration"]["Options"]
        assert container["LogConfiguration"]["LogDriver"] == "awslogs"
        assert options["awslogs-stream-prefix"] == "TestStack_php-fpm"

    def test_log_group(self, template):
        template.has_resource_properties(
            "AWS::Logs::LogGroup",
            {"LogGroupName": "/ecs/TestStack/backend", "RetentionInDays": 30},
        )

    def test_fargate_task_size(self, template):
        template.has_resource_properties(
            "AWS::ECS::TaskDefinition",
            {"Cpu": "256", "Memory": "512", "RequiresCompatibilities": ["FARGATE"]},
        )

    def test_registry_image(self, cluster_stack):
        stack, cluster = cluster_stack
        make_backend(
            stack, cluster, asset_directory=None, registry_image="php:8.3-fpm"
        )
        container = container_definition(Template.from_stack(stack), "php-fpm")
        assert container["Image"] == "php:8.3-fpm"


class TestBackendService:
    def test_private_service_without_public_ip(self, template):
        template.has_resource_properties(
            "AWS::ECS::Service",
            {
                "LaunchType": "FARGATE",
                "DesiredCount": 2,
                "NetworkConfiguration": {
                    "AwsvpcConfiguration": Match.object_like({"AssignPublicIp": "DISABLED"})
                },
            },
        )

    def test_deployment_circuit_breaker(self, template):
        template.has_resource_properties(
            "AWS::ECS::Service",
            {
                "DeploymentConfiguration": Match.object_like(
                    {"DeploymentCircuitBreaker": {"Enable": True, "Rollback": True}}
                ),
            },
        )


class TestBackendScaling:
    def test_replica_range(self, template):
        template.has_resource_properties(
            "AWS::ApplicationAutoScaling::ScalableTarget",
            {"MinCapacity": 2, "MaxCapacity": 5},
        )

    def test_cpu_target_tracking(self, template):
        template.has_resource_properties(
            "AWS::ApplicationAutoScaling::ScalingPolicy",
            {
                "PolicyType": "TargetTrackingScaling",
                "TargetTrackingScalingPolicyConfiguration": Match.object_like(
                    {"TargetValue": 70}
                ),
            },
        )

    def test_custom_range(self, cluster_stack):
        stack, cluster = cluster_stack
        make_backend(stack, cluster, scaling=ScalingSpec(min_capacity=3, max_capacity=8))
        Template.from_stack(stack).has_resource_properties(
            "AWS::ApplicationAutoScaling::ScalableTarget",
            {"MinCapacity": 3, "MaxCapacity": 8},
        )


class TestBackendIngress:
    def test_no_ingress_open_to_the_world(self, template):
        for group in template.find_resources("AWS::EC2::SecurityGroup").values():
            for rule in group["Properties"].get("SecurityGroupIngress", []):
                assert rule.get("CidrIp") != "0.0.0.0/0"
        ingress = template.find_resources(
            "AWS::EC2::SecurityGroupIngress",
            {"Properties": {"CidrIp": "0.0.0.0/0"}},
        )
        assert ingress == {}

    def test_tasks_accept_traffic_from_load_balancer_only(self, template):
        nlb_sg = security_group_id(template, "backend internal NLB")
        task_sg = security_group_id(template, "backend ECS tasks - TestStack")
        template.has_resource_properties(
            "AWS::EC2::SecurityGroupIngress",
            {
                "IpProtocol": "tcp",
                "FromPort": 9000,
                "ToPort": 9000,
                "GroupId": {"Fn::GetAtt": [task_sg, "GroupId"]},
                "SourceSecurityGroupId": {"Fn::GetAtt": [nlb_sg, "GroupId"]},
            },
        )

    def test_allow_from_grants_listener_port(self, cluster_stack, backend):
        stack, cluster = cluster_stack
        peer = ec2.SecurityGroup(stack, "PeerSg", vpc=cluster.vpc, description="peer")
        backend.allow_from(peer)

        template = Template.from_stack(stack)
        nlb_sg = security_group_id(template, "backend internal NLB")
        peer_sg = security_group_id(template, "peer")
        template.has_resource_properties(
            "AWS::EC2::SecurityGroupIngress",
            {
                "IpProtocol": "tcp",
                "FromPort": 9000,
                "ToPort": 9000,
                "GroupId": {"Fn::GetAtt": [nlb_sg, "GroupId"]},
                "SourceSecurityGroupId": {"Fn::GetAtt": [peer_sg, "GroupId"]},
            },
        )


class TestBackendValidation:
    def test_http_health_check_rejected(self, cluster_stack):
        stack, cluster = cluster_stack
        with pytest.raises(InvalidHealthCheckError):
            make_backend(
                stack,
                cluster,
                health_check=HealthCheckSpec(
                    protocol=HealthCheckProtocol.HTTP, path="/health"
                ),
            )
        assert stack.node.try_find_child("Backend") is None

    def test_single_replica_rejected(self, cluster_stack):
        stack, cluster = cluster_stack
        with pytest.raises(InvalidReplicaRangeError):
            make_backend(stack, cluster, scaling=ScalingSpec(min_capacity=1))
        assert stack.node.try_find_child("Backend") is None
