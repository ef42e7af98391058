"""Environment settings."""

import os
from typing import Dict, Mapping, Optional


# Config field -> environment variable
ENV_VARS = {
    "endpoint": "PVE_ENDPOINT",
    "api_token": "PVE_API_TOKEN",
    "api_secret": "PVE_API_SECRET",
    "address": "PVE_ADDRESS",
    "path": "PVE_PATH",
    "node": "PVE_NODE",
    "timeout_seconds": "PVE_TIMEOUT",
    "insecure_skip_verify": "PVE_INSECURE_SKIP_VERIFY",
    "log_level": "PVE_LOG_LEVEL",
}


class Settings:
    """Application settings from environment variables."""

    @staticmethod
    def get(key: str, default: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> str:
        """
        Get environment variable value.

        Args:
            key: Environment variable name
            default: Default value if not set
            environ: Mapping to read instead of os.environ

        Returns:
            str: Environment variable value, "" if unset and no default
        """
        environ = os.environ if environ is None else environ
        value = environ.get(key, default)
        return value or ""

    @staticmethod
    def overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Collect config overrides from PVE_* environment variables.

        Variables that are unset or empty are skipped, so they never clear a
        value coming from the config file.

        Returns:
            Dict mapping config field names to raw string values
        """
        result = {}
        for field, env_name in ENV_VARS.items():
            value = Settings.get(env_name, environ=environ)
            if value:
                result[field] = value
        return result
