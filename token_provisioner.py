"""
Mints the read-only user delegation SAS the proxy appends to every request
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from azure.identity.aio import DefaultAzureCredential
from azure.storage.blob import (
    ContainerSasPermissions,
    UserDelegationKey,
    generate_container_sas,
)
from azure.storage.blob.aio import BlobServiceClient

from settings import ALL_ADDRESSES, STORAGE_DOMAIN

logger = logging.getLogger(__name__)

TOKEN_VALIDITY = timedelta(days=1)


def sign_read_only_token(
    account: str,
    container: str,
    delegation_key: UserDelegationKey,
    start: datetime,
    expiry: datetime,
    ip_range: str = ALL_ADDRESSES,
) -> str:
    """Sign a container SAS that allows reads only, over HTTPS only.

    Returns the query string without a leading '?'.
    """
    return generate_container_sas(
        account_name=account,
        container_name=container,
        user_delegation_key=delegation_key,
        permission=ContainerSasPermissions(read=True),
        start=start,
        expiry=expiry,
        ip=ip_range,
        protocol='https',
    )


async def provision_token(
    account: str,
    container: str,
    ip_range: str = ALL_ADDRESSES,
    now: Optional[datetime] = None,
) -> str:
    """Authenticate with the ambient Azure identity and mint one token.

    The delegation key covers the same window as the token, otherwise the
    service stops honouring the token as soon as the key expires. Any
    identity or signing error propagates to the caller.
    """
    start = now or datetime.now(timezone.utc)
    expiry = start + TOKEN_VALIDITY
    account_url = f"https://{account}.{STORAGE_DOMAIN}/"

    async with DefaultAzureCredential() as credential:
        async with BlobServiceClient(account_url, credential=credential) as blob_storage:
            delegation_key = await blob_storage.get_user_delegation_key(
                key_start_time=start,
                key_expiry_time=expiry,
            )

    token = sign_read_only_token(account, container, delegation_key, start, expiry, ip_range)
    logger.info(
        "Read-only token for %s/%s issued, expires at: %s",
        account, container, expiry.isoformat(),
    )
    return token
