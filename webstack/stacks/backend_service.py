from __future__ import annotations

from pathlib import Path

from aws_cdk import RemovalPolicy
from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_ecs as ecs
from aws_cdk import aws_elasticloadbalancingv2 as elbv2
from aws_cdk import aws_logs as logs
from constructs import Construct

from webstack.logging_config import get_logger
from webstack.schemas.service import HealthCheckProtocol, ServiceSpec
from webstack.stacks.fargate_workload import FargateWorkload
from webstack.validators.health_check_validator import HealthCheckValidator

logger = get_logger(__name__)


class BackendService(FargateWorkload):
    """php-fpm tasks behind an internal network load balancer.

    The NLB carries its own security group. Tasks only accept traffic from it, and
    the NLB only accepts traffic from peers passed to :meth:`allow_from`.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        cluster: ecs.ICluster,
        spec: ServiceSpec,
        assets_dir: Path,
        log_retention: logs.RetentionDays = logs.RetentionDays.ONE_MONTH,
        removal_policy: RemovalPolicy = RemovalPolicy.DESTROY,
    ) -> None:
        HealthCheckValidator(HealthCheckProtocol.TCP).validate(spec)
        super().__init__(
            scope,
            construct_id,
            cluster=cluster,
            spec=spec,
            environment=dict(spec.environment),
            assets_dir=assets_dir,
            log_retention=log_retention,
            removal_policy=removal_policy,
        )

        self.load_balancer_security_group = ec2.SecurityGroup(
            self,
            "LoadBalancerSg",
            vpc=cluster.vpc,
            description=f"{spec.name} internal NLB",
        )
        self.security_group.add_ingress_rule(
            self.load_balancer_security_group,
            ec2.Port.tcp(spec.container_port),
            "From internal NLB",
        )

        self.load_balancer = elbv2.NetworkLoadBalancer(
            self,
            "LoadBalancer",
            vpc=cluster.vpc,
            internet_facing=False,
            security_groups=[self.load_balancer_security_group],
            vpc_subnets=ec2.SubnetSelection(
                subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS
            ),
        )
        listener = self.load_balancer.add_listener(
            "Tcp",
            port=spec.listener_port,
            protocol=elbv2.Protocol.TCP,
        )
        listener.add_targets(
            "BackendTarget",
            port=spec.container_port,
            protocol=elbv2.Protocol.TCP,
            targets=[self.service],
            health_check=elbv2.HealthCheck(
                protocol=elbv2.Protocol.TCP,
                interval=self._health_check_interval(),
                healthy_threshold_count=spec.health_check.healthy_threshold,
                unhealthy_threshold_count=spec.health_check.unhealthy_threshold,
            ),
        )

        logger.info(
            "backend_service_defined",
            service=spec.name,
            container=spec.container_name,
            port=spec.listener_port,
            min_capacity=spec.scaling.min_capacity,
            max_capacity=spec.scaling.max_capacity,
        )

    @property
    def load_balancer_address(self) -> str:
        return self.load_balancer.load_balancer_dns_name

    @property
    def port(self) -> int:
        return self.spec.listener_port

    def allow_from(self, peer: ec2.IConnectable) -> None:
        self.load_balancer_security_group.connections.allow_from(
            peer,
            ec2.Port.tcp(self.spec.listener_port),
            "To internal NLB",
        )
