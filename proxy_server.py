#!/usr/bin/env python3
"""
Source-map proxy server using Sanic
Passes requests under /<container> through to Azure Blob Storage with a read-only SAS token
"""

import asyncio
import logging
import sys

import aiohttp
from azure.core.exceptions import AzureError
from dotenv import load_dotenv
from sanic import Sanic, Request, response
from yarl import URL

from logging_setup import setup_logging
from settings import ConfigError, Settings
from token_provisioner import provision_token

logger = logging.getLogger(__name__)

HTTPS_PORT = 443
PROXY_METHODS = ['GET', 'HEAD', 'POST', 'PUT', 'DELETE', 'PATCH', 'OPTIONS']

# Not forwarded in either direction, except Content-Length on HEAD responses
HOP_BY_HOP_HEADERS = frozenset([
    'connection', 'keep-alive', 'proxy-authenticate', 'proxy-authorization',
    'te', 'trailers', 'transfer-encoding', 'upgrade', 'content-length',
])

timeout = aiohttp.ClientTimeout(total=120)


def rewrite_path(path: str, sas_token: str) -> str:
    """Append the token to the inbound path.

    Plain concatenation: a query string already on ``path`` is not merged,
    so ``/c/a.map?x=1`` becomes ``/c/a.map?x=1?<token>``.
    """
    rewritten = f"{path}?{sas_token}"
    logger.info("rewriting to %s", rewritten)
    return rewritten


def upstream_headers(inbound, storage_host: str) -> dict:
    headers = {
        name: value for name, value in inbound.items()
        if name.lower() not in HOP_BY_HOP_HEADERS and name.lower() != 'host'
    }
    headers['Host'] = storage_host
    return headers


def downstream_headers(upstream, method: str = 'GET') -> dict:
    """End-to-end response headers, minus Content-Type.

    A HEAD response has no body, so the upstream Content-Length is the only
    record of the blob size and is kept.
    """
    dropped = HOP_BY_HOP_HEADERS
    if method == 'HEAD':
        dropped = HOP_BY_HOP_HEADERS - {'content-length'}
    return {
        name: value for name, value in upstream.items()
        if name.lower() not in dropped and name.lower() != 'content-type'
    }


async def forward(method: str, url: str, headers: dict, data):
    """Issue the upstream request and return (status, headers, body).

    The URL is already encoded and must reach the storage service
    unchanged, the SAS signature covers it. The body is returned as sent,
    content encoding included.
    """
    async with aiohttp.ClientSession(timeout=timeout, auto_decompress=False) as session:
        async with session.request(
            method=method,
            url=URL(url, encoded=True),
            headers=headers,
            data=data,
            allow_redirects=False,
        ) as resp:
            body = await resp.read()
            return resp.status, resp.headers, body


def create_app(settings: Settings, sas_token: str) -> Sanic:
    # sanic.* records propagate to the root handler from setup_logging
    app = Sanic("sourcemap-proxy", configure_logging=False)

    async def proxy_blob(request: Request, path: str = ''):
        """Proxy a request under the mount prefix to blob storage"""

        inbound_path = request.path
        if request.query_string:
            inbound_path = f"{inbound_path}?{request.query_string}"
        target_url = settings.storage_origin + rewrite_path(inbound_path, sas_token)

        headers = upstream_headers(request.headers, settings.storage_host)
        data = request.body or None

        try:
            status, resp_headers, body = await forward(request.method, target_url, headers, data)
        except asyncio.TimeoutError:
            logger.warning("Upstream timed out for %s %s", request.method, request.path)
            return response.text('Gateway Timeout', status=504)
        except aiohttp.ClientError as e:
            logger.warning("Upstream request failed for %s %s: %s", request.method, request.path, e)
            return response.text('Bad Gateway', status=502)

        return response.raw(
            body,
            status=status,
            headers=downstream_headers(resp_headers, request.method),
            content_type=resp_headers.get('Content-Type', 'application/octet-stream'),
        )

    app.add_route(proxy_blob, settings.mount_prefix, methods=PROXY_METHODS, name='container')
    app.add_route(
        proxy_blob, f"{settings.mount_prefix}/<path:path>", methods=PROXY_METHODS, name='blob'
    )

    @app.after_server_start
    async def announce(app):
        logger.info("source-maps proxy service live")

    return app


def main():
    load_dotenv()
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        setup_logging()
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    setup_logging(settings.log_level)

    # Provision before binding: nothing is served without a token
    try:
        sas_token = asyncio.run(provision_token(
            settings.storage_account,
            settings.storage_container,
            ip_range=settings.sas_ip_range,
        ))
    except AzureError as e:
        logger.error("Could not provision storage token: %s", e)
        sys.exit(1)

    app = create_app(settings, sas_token)
    app.run(
        host=settings.ssl_host,
        port=HTTPS_PORT,
        ssl=settings.ssl,
        single_process=True,
    )


if __name__ == '__main__':
    main()
