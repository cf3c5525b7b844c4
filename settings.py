"""
Process configuration for the source-map proxy, read once from the environment
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

STORAGE_DOMAIN = 'blob.core.windows.net'
ALL_ADDRESSES = '0.0.0.0-255.255.255.255'

REQUIRED_VARS = (
    'STORAGE_ACCOUNT',
    'BLOB_CONTAINER',
    'SSL_KEY',
    'SSL_CERT',
    'SSL_PASSPHRASE',
    'SSL_HOST',
)


class ConfigError(Exception):
    """Raised when required configuration is missing."""


@dataclass(frozen=True)
class Settings:
    storage_account: str
    storage_container: str
    ssl_key: str
    ssl_cert: str
    ssl_passphrase: str
    ssl_host: str
    sas_ip_range: str = ALL_ADDRESSES
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """Build settings from environment variables.

        Every variable in REQUIRED_VARS must be set and non-empty, otherwise
        ConfigError lists the ones that are missing.
        """
        env = os.environ if environ is None else environ
        missing = [name for name in REQUIRED_VARS if not env.get(name)]
        if missing:
            raise ConfigError(
                f"missing required settings: {', '.join(missing)} "
                "(make sure to set up your .env file)"
            )

        return cls(
            storage_account=env['STORAGE_ACCOUNT'],
            storage_container=env['BLOB_CONTAINER'],
            ssl_key=env['SSL_KEY'],
            ssl_cert=env['SSL_CERT'],
            ssl_passphrase=env['SSL_PASSPHRASE'],
            ssl_host=env['SSL_HOST'],
            sas_ip_range=env.get('SAS_IP_RANGE') or ALL_ADDRESSES,
            log_level=(env.get('LOG_LEVEL') or 'INFO').upper(),
        )

    @property
    def storage_host(self) -> str:
        return f"{self.storage_account}.{STORAGE_DOMAIN}"

    @property
    def storage_origin(self) -> str:
        return f"https://{self.storage_host}"

    @property
    def mount_prefix(self) -> str:
        return f"/{self.storage_container}"

    @property
    def ssl(self) -> dict:
        # Sanic loads the key pair itself; the password unlocks an encrypted key
        return {
            'cert': self.ssl_cert,
            'key': self.ssl_key,
            'password': self.ssl_passphrase,
        }
