import json
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from webstack.config import settings
from webstack.exceptions.stack_exceptions import TemplateValidationError
from webstack.logging_config import get_logger

logger = get_logger(__name__)

# ValidateTemplate rejects inline bodies above this size
MAX_TEMPLATE_BODY_BYTES = 51_200


class TemplateValidationService:
    def __init__(self, client: Optional[Any] = None) -> None:
        self._client = client or boto3.client(
            "cloudformation", region_name=settings.cdk_default_region
        )

    def validate(self, stack_name: str, template: Dict[str, Any]) -> Dict[str, Any]:
        body = json.dumps(template, sort_keys=True, separators=(",", ":"))
        size = len(body.encode("utf-8"))
        if size > MAX_TEMPLATE_BODY_BYTES:
            raise TemplateValidationError(
                f"Template for {stack_name} is {size} bytes; inline validation "
                f"accepts at most {MAX_TEMPLATE_BODY_BYTES}."
            )

        try:
            response = self._client.validate_template(TemplateBody=body)
        except (ClientError, BotoCoreError) as e:
            logger.warning("template_validation_failed", stack=stack_name, error=str(e))
            raise TemplateValidationError(
                f"CloudFormation rejected template for {stack_name}: {e}"
            ) from e

        logger.info(
            "template_validated",
            stack=stack_name,
            bytes=size,
            capabilities=response.get("Capabilities", []),
        )
        return response
