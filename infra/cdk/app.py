#!/usr/bin/env python3
"""
CDK app entry point.

Usage
-----
Install the project first (from the repository root):
    pip install -e .

Bootstrap (once per account/region):
    cdk bootstrap aws://<ACCOUNT_ID>/<REGION>

Synthesize / deploy (from infra/cdk):
    ENVIRONMENT=staging cdk synth
    ENVIRONMENT=prod cdk deploy PhpFpmNginxWebStack \
        --context certificate_arn=<ACM_ARN>

Set VALIDATE_TEMPLATE=true to send the synthesized template to CloudFormation
ValidateTemplate before handing it to the cdk CLI.
"""

import aws_cdk as cdk

from webstack.config import settings
from webstack.logging_config import bind_stack_context, configure_logging, get_logger
from webstack.services.template_validation import TemplateValidationService
from webstack.stacks.web_stack import WebStack, config_for_environment

configure_logging()
bind_stack_context(settings.stack_name, settings.environment)
logger = get_logger(__name__)

app = cdk.App()

stack = WebStack(
    app,
    settings.stack_name,
    config=config_for_environment(
        settings.environment,
        assets_dir=settings.assets_dir,
        certificate_arn=settings.certificate_arn,
    ),
    env=cdk.Environment(
        account=settings.cdk_default_account,
        region=settings.cdk_default_region,
    ),
)

assembly = app.synth()
logger.info("template_synthesized", outdir=assembly.directory)

if settings.validate_template:
    TemplateValidationService().validate(
        stack.stack_name,
        assembly.get_stack_by_name(stack.stack_name).template,
    )
