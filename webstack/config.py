from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

REPO_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    environment: str = "development"
    log_level: str = "INFO"
    stack_name: str = "PhpFpmNginxWebStack"

    # Resolved by the cdk CLI from the active profile when unset
    cdk_default_account: Optional[str] = None
    cdk_default_region: str = "us-east-1"

    # Parent directory of the nginx/ and php-fpm/ image build contexts
    assets_dir: Path = REPO_ROOT

    # ACM certificate for the public listener; cdk context "certificate_arn" wins
    certificate_arn: Optional[str] = None

    # Off by default: validation is the only step that calls AWS
    validate_template: bool = False


settings = Settings()
