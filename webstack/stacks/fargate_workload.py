"""
Shared Fargate plumbing for the two services of the web stack.

Each workload gets its own security group, task definition, log group, Fargate
service in the private subnets and CPU target-tracking scaling. Subclasses put a
load balancer in front of ``self.service``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from aws_cdk import Duration, RemovalPolicy, Stack
from aws_cdk import aws_ec2 as ec2
from aws_cdk import aws_ecs as ecs
from aws_cdk import aws_logs as logs
from constructs import Construct

from webstack.schemas.service import ServiceSpec
from webstack.validators.replica_range_validator import ReplicaRangeValidator


class FargateWorkload(Construct):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        cluster: ecs.ICluster,
        spec: ServiceSpec,
        environment: Dict[str, str],
        assets_dir: Path,
        log_retention: logs.RetentionDays = logs.RetentionDays.ONE_MONTH,
        removal_policy: RemovalPolicy = RemovalPolicy.DESTROY,
    ) -> None:
        ReplicaRangeValidator().validate(spec)
        super().__init__(scope, construct_id)

        self.spec = spec
        self.cluster = cluster
        stack = Stack.of(self)

        self.security_group = ec2.SecurityGroup(
            self,
            "ServiceSg",
            vpc=cluster.vpc,
            description=f"{spec.name} ECS tasks - {stack.node.id}",
        )

        self.task_definition = ecs.FargateTaskDefinition(
            self,
            "TaskDef",
            cpu=spec.cpu,
            memory_limit_mib=spec.memory_mib,
        )
        self.log_group = logs.LogGroup(
            self,
            "Logs",
            log_group_name=f"/ecs/{stack.node.id}/{spec.name}",
            retention=log_retention,
            removal_policy=removal_policy,
        )
        self.container = self.task_definition.add_container(
            spec.container_name,
            image=self._container_image(assets_dir),
            command=spec.command,
            environment=environment,
            port_mappings=[ecs.PortMapping(container_port=spec.container_port)],
            logging=ecs.LogDrivers.aws_logs(
                stream_prefix=f"{stack.node.id}_{spec.container_name}",
                log_group=self.log_group,
            ),
        )

        self.service = ecs.FargateService(
            self,
            "Service",
            cluster=cluster,
            task_definition=self.task_definition,
            desired_count=spec.scaling.min_capacity,
            security_groups=[self.security_group],
            vpc_subnets=ec2.SubnetSelection(
                subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS
            ),
            assign_public_ip=False,
            min_healthy_percent=50,
            max_healthy_percent=200,
            health_check_grace_period=Duration.seconds(60),
            circuit_breaker=ecs.DeploymentCircuitBreaker(rollback=True),
        )

        self.scaling = self.service.auto_scale_task_count(
            min_capacity=spec.scaling.min_capacity,
            max_capacity=spec.scaling.max_capacity,
        )
        self.scaling.scale_on_cpu_utilization(
            "CpuScaling",
            target_utilization_percent=spec.scaling.target_cpu_utilization,
            scale_in_cooldown=Duration.seconds(spec.scaling.cooldown_seconds),
            scale_out_cooldown=Duration.seconds(spec.scaling.cooldown_seconds),
        )

    def _container_image(self, assets_dir: Path) -> ecs.ContainerImage:
        if self.spec.asset_directory is not None:
            return ecs.ContainerImage.from_asset(
                str(Path(assets_dir) / self.spec.asset_directory)
            )
        return ecs.ContainerImage.from_registry(self.spec.registry_image)

    def _health_check_interval(self) -> Duration:
        return Duration.seconds(self.spec.health_check.interval_seconds)

    def _health_check_timeout(self) -> Optional[Duration]:
        timeout = self.spec.health_check.timeout_seconds
        return Duration.seconds(timeout) if timeout else None
