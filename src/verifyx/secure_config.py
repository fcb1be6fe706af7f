"""
Secure Configuration Manager for Verify-X
Loads oracle API keys from local secret files without leaking them to logs
"""

import os
import logging
from typing import Optional, Dict, Any, List, Sequence
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PROVIDERS = ("google", "openai", "anthropic")

PLACEHOLDER_VALUES = {
    "your_google_key_here",
    "your_openai_key_here",
    "your_anthropic_key_here",
    "sk-...",
    "...",
}

# Priority order (highest to lowest); earlier files win because
# load_dotenv never overrides values that are already set.
DEFAULT_CONFIG_PATHS = (
    "config/secrets/.env.local",
    "~/.verifyx/.env",
    ".env",
)


def mask_key(key: str) -> str:
    """Mask an API key for logging"""
    return key[:8] + "..." + key[-4:] if len(key) > 12 else "***"


class SecureConfig:
    """Resolves oracle API keys, preferring local secret files"""

    def __init__(self, config_paths: Optional[Sequence[str]] = None,
                 environ: Optional[Dict[str, str]] = None):
        self.config_paths = list(config_paths if config_paths is not None else DEFAULT_CONFIG_PATHS)
        self.loaded_paths: List[str] = []
        self.api_keys: Dict[str, Optional[str]] = {}
        self._environ = environ
        self._load_config()

    def _load_config(self):
        """Load env files in priority order, then read the API keys"""
        for config_path in self.config_paths:
            path = os.path.expanduser(config_path)
            if os.path.exists(path):
                load_dotenv(path, override=False)
                self.loaded_paths.append(path)
                logger.info(f"Loaded config from: {path}")

        if not self.loaded_paths:
            logger.debug("No secret files found, using process environment only")

        env = self._environ if self._environ is not None else os.environ
        for provider in PROVIDERS:
            key = env.get(f"VERIFYX_{provider.upper()}_API_KEY")
            if provider == "google" and not key:
                key = env.get("GEMINI_API_KEY")
            self.api_keys[provider] = key

        self._validate_api_key_security()

    def _validate_api_key_security(self):
        """Warn about placeholder or suspicious keys"""
        for provider, key in self.api_keys.items():
            if not key:
                continue
            if key in PLACEHOLDER_VALUES:
                logger.warning(f"{provider} API key appears to be a placeholder")
            elif len(key) < 10:
                logger.warning(f"{provider} API key seems too short")
            else:
                logger.info(f"{provider} API key loaded: {mask_key(key)}")

    def get_api_key(self, provider: str) -> Optional[str]:
        """Get a usable API key for a provider"""
        key = self.api_keys.get(provider.lower())
        if key and key not in PLACEHOLDER_VALUES:
            return key
        return None

    def discover_available_providers(self) -> List[str]:
        """Providers that have a usable API key"""
        return [p for p in PROVIDERS if self.get_api_key(p)]

    def get_summary(self) -> Dict[str, Any]:
        """Configuration summary (safe for logging and the status endpoint)"""
        return {
            "api_keys": {
                provider: "configured" if self.get_api_key(provider) else "missing"
                for provider in PROVIDERS
            },
            "secret_files_loaded": len(self.loaded_paths),
        }
