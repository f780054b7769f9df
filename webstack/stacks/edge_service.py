from __future__ import annotations

from pathlib import Path
from typing import Optional

from aws_cdk import RemovalPolicy
from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_ecs as ecs
from aws_cdk import aws_elasticloadbalancingv2 as elbv2
from aws_cdk import aws_logs as logs
from constructs import Construct

from webstack.logging_config import get_logger
from webstack.schemas.service import HealthCheckProtocol, ServiceSpec
from webstack.stacks.fargate_workload import FargateWorkload
from webstack.validators.backend_address_validator import (
    BACKEND_HOST_VARIABLE,
    BACKEND_PORT_VARIABLE,
    BackendAddressValidator,
    ReservedEnvironmentValidator,
)
from webstack.validators.health_check_validator import HealthCheckValidator

logger = get_logger(__name__)

HTTPS_PORT = 443


class EdgeService(FargateWorkload):
    """nginx reverse proxy behind a public application load balancer.

    The proxy reads the backend host from ``APP_HOST`` and its port from
    ``APP_PORT``. Construction fails before any resource is added when no backend
    address is given.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        cluster: ecs.ICluster,
        spec: ServiceSpec,
        backend_address: Optional[str],
        backend_port: int,
        assets_dir: Path,
        certificate_arn: Optional[str] = None,
        log_retention: logs.RetentionDays = logs.RetentionDays.ONE_MONTH,
        removal_policy: RemovalPolicy = RemovalPolicy.DESTROY,
    ) -> None:
        for validator in (
            BackendAddressValidator(backend_address),
            ReservedEnvironmentValidator(),
            HealthCheckValidator(HealthCheckProtocol.HTTP),
        ):
            validator.validate(spec)

        environment = {
            BACKEND_HOST_VARIABLE: backend_address,
            BACKEND_PORT_VARIABLE: str(backend_port),
            **spec.environment,
        }
        super().__init__(
            scope,
            construct_id,
            cluster=cluster,
            spec=spec,
            environment=environment,
            assets_dir=assets_dir,
            log_retention=log_retention,
            removal_policy=removal_policy,
        )
        self.certificate_arn = certificate_arn

        self.load_balancer_security_group = ec2.SecurityGroup(
            self, "LoadBalancerSg", vpc=cluster.vpc, description=f"{spec.name} ALB"
        )
        self.load_balancer_security_group.add_ingress_rule(
            ec2.Peer.any_ipv4(), ec2.Port.tcp(spec.listener_port), "HTTP inbound"
        )

        self.load_balancer = elbv2.ApplicationLoadBalancer(
            self,
            "LoadBalancer",
            vpc=cluster.vpc,
            internet_facing=True,
            security_group=self.load_balancer_security_group,
            vpc_subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PUBLIC),
        )

        if certificate_arn:
            # Plain HTTP only redirects; traffic is served on the TLS listener
            self.load_balancer_security_group.add_ingress_rule(
                ec2.Peer.any_ipv4(), ec2.Port.tcp(HTTPS_PORT), "HTTPS inbound"
            )
            self.load_balancer.add_redirect(
                source_port=spec.listener_port, target_port=HTTPS_PORT
            )
            listener = self.load_balancer.add_listener(
                "Https",
                port=HTTPS_PORT,
                certificates=[elbv2.ListenerCertificate.from_arn(certificate_arn)],
            )
        else:
            listener = self.load_balancer.add_listener(
                "Http", port=spec.listener_port, open=True
            )

        listener.add_targets(
            "EdgeTarget",
            port=spec.container_port,
            protocol=elbv2.ApplicationProtocol.HTTP,
            targets=[self.service],
            health_check=elbv2.HealthCheck(
                path=spec.health_check.path,
                healthy_http_codes=spec.health_check.healthy_http_codes,
                interval=self._health_check_interval(),
                timeout=self._health_check_timeout(),
                healthy_threshold_count=spec.health_check.healthy_threshold,
                unhealthy_threshold_count=spec.health_check.unhealthy_threshold,
            ),
        )

        logger.info(
            "edge_service_defined",
            service=spec.name,
            container=spec.container_name,
            port=spec.listener_port,
            https=bool(certificate_arn),
            min_capacity=spec.scaling.min_capacity,
            max_capacity=spec.scaling.max_capacity,
        )

    @property
    def load_balancer_dns_name(self) -> str:
        return self.load_balancer.load_balancer_dns_name

    @property
    def url(self) -> str:
        scheme = "https" if self.certificate_arn else "http"
        return f"{scheme}://{self.load_balancer_dns_name}"
