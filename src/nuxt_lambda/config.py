"""Builder configuration contract."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from nuxt_lambda.errors import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    npm_auth_token: str = Field(alias="NPM_AUTH_TOKEN", default="")
    npm_registry: str = Field(alias="NPM_REGISTRY", default="registry.npmjs.org")

    lambda_runtime: str = Field(alias="LAMBDA_RUNTIME", default="nodejs8.10")
    lambda_handler: str = Field(alias="LAMBDA_HANDLER", default="now__launcher.launcher")

    nuxt_version: str = Field(alias="NUXT_VERSION", default="latest")
    nuxt_build_command: str = Field(alias="NUXT_BUILD_COMMAND", default="nuxt build")
    build_script: str = Field(alias="BUILD_SCRIPT", default="now-build")

    # The bridge package is installed as a runtime dependency of the staged
    # app; its entry file is shipped in every lambda as now__bridge.js.
    bridge_package: str = Field(alias="BRIDGE_PACKAGE", default="@now/node-bridge")
    bridge_version: str = Field(alias="BRIDGE_VERSION", default="latest")
    bridge_entry: str = Field(alias="BRIDGE_ENTRY", default="bridge.js")


def validate_settings(settings: Settings) -> None:
    problems: list[str] = []
    if not settings.lambda_runtime.startswith("nodejs"):
        problems.append("LAMBDA_RUNTIME(must be a nodejs runtime)")
    if not settings.build_script.strip():
        problems.append("BUILD_SCRIPT")
    if not settings.nuxt_build_command.strip():
        problems.append("NUXT_BUILD_COMMAND")
    if not settings.bridge_package.strip():
        problems.append("BRIDGE_PACKAGE")
    if "." not in settings.lambda_handler:
        problems.append("LAMBDA_HANDLER(expected <module>.<export>)")
    if problems:
        keys = ", ".join(sorted(set(problems)))
        raise ConfigurationError(f"invalid builder configuration: {keys}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
