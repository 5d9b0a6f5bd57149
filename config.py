import copy
import json
import os
import secrets
from pathlib import Path
from typing import Any, Dict, Optional, cast

# Fields that are encrypted on disk
SENSITIVE_FIELDS = [
    "cron_secret",
    "jwt_secret",
]

DEFAULT_CONFIG: Dict[str, Any] = {
    "environment": "production",
    "cron_secret": None,
    "jwt_secret": None,
    "provider": {
        "api_base_url": "https://api.cloudflare.com/client/v4",
        "request_timeout": 30,
        "page_size": 1000,
    },
    "cache": {
        "backend": "sqlite",
        "stats_ttl_seconds": 3600,
        "user_buckets_ttl_seconds": 3600,
        "last_refresh_ttl_seconds": 86400,
        "summary_ttl_seconds": 86400,
    },
    "refresh": {
        "schedule": "*/10 * * * *",
        "stats_workers": 8,
    },
    "stats": {
        "seed": None,
    },
}


def default_data_dir() -> Path:
    """Data directory, overridable with R2DASH_DATA_DIR"""
    return Path(os.getenv("R2DASH_DATA_DIR", Path.home() / ".r2dash"))


def _merge_defaults(defaults: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(defaults)
    for key, value in data.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_defaults(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    def __init__(self, data_dir: Optional[Path] = None) -> None:
        self.data_dir = Path(data_dir) if data_dir else default_data_dir()
        self.config_file = self.data_dir / "config.json"
        self._ensure_config_exists()

        from core.security import SecurityManager

        self.security = SecurityManager(self.data_dir / ".secret.key")
        self.config = self._load_config()
        self._ensure_secrets()

    def _ensure_config_exists(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if not self.config_file.exists():
            with open(self.config_file, "w") as f:
                json.dump(DEFAULT_CONFIG, f, indent=4)

    def _process_config(self, data: Any, encrypt: bool = True) -> Any:
        """Recursively encrypt or decrypt sensitive fields in config"""
        if isinstance(data, dict):
            new_data = {}
            for k, v in data.items():
                if k in SENSITIVE_FIELDS and isinstance(v, str) and v:
                    new_data[k] = (
                        self.security.encrypt(v)
                        if encrypt
                        else self.security.decrypt(v)
                    )
                else:
                    new_data[k] = self._process_config(v, encrypt)
            return new_data
        elif isinstance(data, list):
            return [self._process_config(item, encrypt) for item in data]
        else:
            return data

    def _load_config(self) -> Dict[str, Any]:
        with open(self.config_file, "r") as f:
            data = json.load(f)

        processed = self._process_config(data, encrypt=False)
        return _merge_defaults(DEFAULT_CONFIG, cast(Dict[str, Any], processed))

    def _ensure_secrets(self) -> None:
        """Generate the shared secrets on first start"""
        changed = False
        for field in SENSITIVE_FIELDS:
            if not self.config.get(field):
                self.config[field] = secrets.token_urlsafe(32)
                changed = True
        if changed:
            self.save_config()

    def save_config(self) -> None:
        encrypted_config = self._process_config(self.config, encrypt=True)

        with open(self.config_file, "w") as f:
            json.dump(encrypted_config, f, indent=4)

    def _section(self, name: str) -> Dict[str, Any]:
        return cast(Dict[str, Any], self.config.get(name, {}))

    @property
    def environment(self) -> str:
        return os.getenv("R2DASH_ENVIRONMENT") or str(self.config.get("environment", "production"))

    @property
    def cron_secret(self) -> str:
        return os.getenv("R2DASH_CRON_SECRET") or str(self.config["cron_secret"])

    @property
    def jwt_secret(self) -> str:
        return str(self.config["jwt_secret"])

    def get_provider_settings(self) -> Dict[str, Any]:
        return self._section("provider")

    def get_cache_settings(self) -> Dict[str, Any]:
        return self._section("cache")

    def get_refresh_settings(self) -> Dict[str, Any]:
        return self._section("refresh")

    def get_stats_settings(self) -> Dict[str, Any]:
        return self._section("stats")

    def update_section(self, name: str, **settings: Any) -> None:
        """Update one config section and persist it"""
        if name not in self.config or not isinstance(self.config[name], dict):
            self.config[name] = {}
        self.config[name].update(settings)
        self.save_config()
