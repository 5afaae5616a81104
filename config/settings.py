"""Application configuration settings.

This module centralizes all configuration values loaded from:
1. config.base.yaml (shared defaults)
2. config.{env}.yaml (environment-specific: dev, staging, prod)
3. config.local.yaml (local overrides, git-ignored)
4. Environment variables (highest priority)

Default environment is 'development' (DEV).

Usage:
    from config.settings import config

    mongo_uri = config.MONGO_URI
    page_size = config.MESSAGE_PAGE_SIZE
"""
import os
from pathlib import Path
from typing import Optional, Any, Dict
import yaml


# Environment name mappings
ENV_ALIASES = {
    'dev': 'development',
    'development': 'development',
    'staging': 'staging',
    'stage': 'staging',
    'prod': 'production',
    'production': 'production',
}

DEFAULT_ENV = 'development'

TRUTHY = ('1', 'true', 'yes')


class Config:
    """Centralized application configuration.

    Loads configuration from YAML files based on environment.

    Priority (highest to lowest):
    1. Environment variables
    2. config.local.yaml (for local development overrides)
    3. config.{env}.yaml (environment-specific: dev, staging, prod)
    4. config.base.yaml (shared defaults)

    Environment is determined by:
    1. FLASK_ENV environment variable
    2. APP_ENV environment variable
    3. Default: 'development'
    """

    _config_data: Dict[str, Any] = {}
    _loaded: bool = False
    _current_env: str = DEFAULT_ENV

    def __init__(self):
        if not Config._loaded:
            self._load_config()

    @classmethod
    def _get_environment(cls) -> str:
        """Determine current environment from env vars or default to dev."""
        env = os.getenv('FLASK_ENV') or os.getenv('APP_ENV') or DEFAULT_ENV
        env = env.lower().strip()
        return ENV_ALIASES.get(env, DEFAULT_ENV)

    def _load_config(self):
        """Load configuration from YAML files based on environment."""
        config_dir = Path(__file__).parent
        Config._current_env = self._get_environment()

        Config._config_data = {}

        # 1. Load base config (shared defaults)
        base_config_path = config_dir / 'config.base.yaml'
        if base_config_path.exists():
            with open(base_config_path, 'r') as f:
                Config._config_data = yaml.safe_load(f) or {}

        # 2. Load environment-specific config
        env_config_map = {
            'development': 'config.dev.yaml',
            'staging': 'config.staging.yaml',
            'production': 'config.prod.yaml',
        }
        env_config_file = env_config_map.get(Config._current_env, 'config.dev.yaml')
        env_config_path = config_dir / env_config_file

        if env_config_path.exists():
            with open(env_config_path, 'r') as f:
                env_data = yaml.safe_load(f) or {}
                Config._config_data = self._deep_merge(Config._config_data, env_data)

        # 3. Load local overrides (not in git)
        local_config_path = config_dir / 'config.local.yaml'
        if local_config_path.exists():
            with open(local_config_path, 'r') as f:
                local_data = yaml.safe_load(f) or {}
                Config._config_data = self._deep_merge(Config._config_data, local_data)

        Config._loaded = True

    def _deep_merge(self, base: dict, override: dict) -> dict:
        """Deep merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def _get_yaml_value(self, *keys, default=None) -> Any:
        """Get a nested value from YAML config."""
        value = Config._config_data
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return default
            if value is None:
                return default
        return value

    def _get_bool(self, env_name: str, *keys, default: bool = False) -> bool:
        env_val = os.getenv(env_name, '').lower()
        if env_val:
            return env_val in TRUTHY
        return bool(self._get_yaml_value(*keys, default=default))

    def _get_int(self, env_name: str, *keys, default: int = 0) -> int:
        env_val = os.getenv(env_name)
        if env_val:
            return int(env_val)
        return int(self._get_yaml_value(*keys, default=default))

    @classmethod
    def reload(cls):
        """Reload configuration (useful for testing)."""
        cls._loaded = False
        cls._config_data = {}
        instance = cls()
        return instance

    # ==========================================================================
    # Environment Info
    # ==========================================================================

    @property
    def CURRENT_ENV(self) -> str:
        """Current environment name."""
        return Config._current_env

    @property
    def IS_DEV(self) -> bool:
        return Config._current_env == 'development'

    @property
    def IS_STAGING(self) -> bool:
        return Config._current_env == 'staging'

    @property
    def IS_PROD(self) -> bool:
        return Config._current_env == 'production'

    # ==========================================================================
    # Application Settings
    # ==========================================================================

    @property
    def DEBUG(self) -> bool:
        """Flask debug mode."""
        return self._get_bool('FLASK_DEBUG', 'app', 'debug', default=False)

    @property
    def ENV(self) -> str:
        return Config._current_env

    @property
    def HOST(self) -> str:
        return os.getenv('HOST') or self._get_yaml_value('app', 'host', default='0.0.0.0')

    @property
    def PORT(self) -> int:
        """Server port."""
        return self._get_int('PORT', 'app', 'port', default=5000)

    @property
    def APP_NAME(self) -> str:
        return os.getenv('APP_NAME') or self._get_yaml_value('app', 'name', default='Chatify API')

    @property
    def APP_VERSION(self) -> str:
        return self._get_yaml_value('app', 'version', default='1.0.0')

    # ==========================================================================
    # Database Settings
    # ==========================================================================

    @property
    def MONGO_URI(self) -> str:
        """MongoDB connection URI."""
        return os.getenv('MONGO_URI') or self._get_yaml_value('database', 'mongo_uri', default='mongodb://localhost:27017')

    @property
    def CHAT_DB_NAME(self) -> str:
        """Database holding users, groups and messages."""
        return os.getenv('CHAT_DB_NAME') or self._get_yaml_value('database', 'name', default='chatify_db')

    # ==========================================================================
    # CORS / Socket.IO Settings
    # ==========================================================================

    @property
    def CORS_ORIGINS(self) -> str:
        """Allowed CORS origins."""
        return os.getenv('CORS_ORIGINS') or self._get_yaml_value('cors', 'origins', default='*')

    @property
    def CORS_ORIGINS_LIST(self) -> list:
        origins = self.CORS_ORIGINS
        if origins == '*':
            return ['*']
        return [o.strip() for o in origins.split(',') if o.strip()]

    @property
    def SOCKETIO_ASYNC_MODE(self) -> str:
        """Socket.IO async mode; handlers run on worker threads in 'threading'."""
        return os.getenv('SOCKETIO_ASYNC_MODE') or self._get_yaml_value('socketio', 'async_mode', default='threading')

    # ==========================================================================
    # Messaging Settings
    # ==========================================================================

    @property
    def MESSAGE_PAGE_SIZE(self) -> int:
        """Number of messages returned by a conversation/group page."""
        return self._get_int('MESSAGE_PAGE_SIZE', 'messaging', 'page_size', default=50)

    @property
    def SEARCH_RESULT_LIMIT(self) -> int:
        return self._get_int('SEARCH_RESULT_LIMIT', 'messaging', 'search_limit', default=50)

    @property
    def MAX_ATTACHMENT_SIZE_MB(self) -> int:
        """Largest attachment size accepted in a message reference."""
        return self._get_int('MAX_ATTACHMENT_SIZE_MB', 'upload', 'max_file_size_mb', default=10)

    # ==========================================================================
    # Logging Settings
    # ==========================================================================

    @property
    def LOG_LEVEL(self) -> str:
        """Logging level."""
        env_val = os.getenv('LOG_LEVEL')
        if env_val:
            return env_val.upper()
        if self.LOG_DEBUG:
            return 'DEBUG'
        return str(self._get_yaml_value('logging', 'level', default='INFO')).upper()

    @property
    def LOG_DEBUG(self) -> bool:
        """Enable debug logging (verbose)."""
        return self._get_bool('LOG_DEBUG', 'logging', 'debug', default=False)

    @property
    def LOG_PATTERN(self) -> str:
        return os.getenv('LOG_PATTERN') or self._get_yaml_value('logging', 'pattern', default='%(message)s')

    @property
    def LOG_INCLUDE_DATETIME(self) -> bool:
        return self._get_bool('LOG_INCLUDE_DATETIME', 'logging', 'include_datetime', default=False)

    @property
    def LOG_INCLUDE_NAME(self) -> bool:
        return self._get_bool('LOG_INCLUDE_NAME', 'logging', 'include_name', default=False)

    @property
    def LOG_INCLUDE_LEVEL(self) -> bool:
        return self._get_bool('LOG_INCLUDE_LEVEL', 'logging', 'include_level', default=True)

    @property
    def LOG_DATE_FORMAT(self) -> str:
        return self._get_yaml_value('logging', 'date_format', default='%H:%M:%S')

    @property
    def LOG_FORMAT(self) -> str:
        """Build log format string based on config options."""
        pattern = self.LOG_PATTERN
        if pattern and pattern != '%(message)s':
            return pattern

        parts = []
        if self.LOG_INCLUDE_DATETIME:
            parts.append('%(asctime)s')
        if self.LOG_INCLUDE_NAME:
            parts.append('%(name)s')
        if self.LOG_INCLUDE_LEVEL:
            parts.append('%(levelname)s')
        parts.append('%(message)s')

        return ' - '.join(parts) if len(parts) > 1 else parts[0]

    # ==========================================================================
    # Validation Methods
    # ==========================================================================

    def validate_required(self) -> None:
        """Validate that required configuration values are set.

        Raises RuntimeError if required values are missing in production.
        """
        errors = []

        if self.IS_PROD:
            if not self.MONGO_URI or self.MONGO_URI == 'mongodb://localhost:27017':
                errors.append('MONGO_URI should be set to production database in production')
            if self.CORS_ORIGINS == '*':
                errors.append('CORS_ORIGINS should not be "*" in production')

        if self.MESSAGE_PAGE_SIZE <= 0:
            errors.append('MESSAGE_PAGE_SIZE must be positive')

        if errors:
            raise RuntimeError('Configuration errors:\n' + '\n'.join(f'  - {e}' for e in errors))

    def to_dict(self) -> Dict[str, Any]:
        """Export current configuration as dictionary (for debugging)."""
        return {
            'environment': {
                'current': self.CURRENT_ENV,
                'is_dev': self.IS_DEV,
                'is_staging': self.IS_STAGING,
                'is_prod': self.IS_PROD,
            },
            'app': {
                'debug': self.DEBUG,
                'host': self.HOST,
                'port': self.PORT,
                'name': self.APP_NAME,
                'version': self.APP_VERSION,
            },
            'database': {
                'mongo_uri': '***' if self.MONGO_URI else None,
                'name': self.CHAT_DB_NAME,
            },
            'cors': {
                'origins': self.CORS_ORIGINS,
            },
            'socketio': {
                'async_mode': self.SOCKETIO_ASYNC_MODE,
            },
            'messaging': {
                'page_size': self.MESSAGE_PAGE_SIZE,
                'search_limit': self.SEARCH_RESULT_LIMIT,
                'max_attachment_size_mb': self.MAX_ATTACHMENT_SIZE_MB,
            },
            'logging': {
                'level': self.LOG_LEVEL,
            },
        }


# Singleton config instance
config = Config()


# =============================================================================
# Convenience exports
# =============================================================================

def get_mongo_uri() -> str:
    return config.MONGO_URI

def get_env() -> str:
    return config.ENV

def is_dev() -> bool:
    return config.IS_DEV

def is_prod() -> bool:
    return config.IS_PROD
