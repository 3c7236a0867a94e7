import asyncio
import json
import logging

import requests

from ..config import http_request_timeout
from ..errors import ConfigurationError, TransientProviderError
from ..models import NodeType
from ..node_schemas import HttpRequestConfig
from ..templating import TemplateRenderError, render_template
from .base import NodeExecutor

logger = logging.getLogger(__name__)

METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")
BODY_METHODS = ("POST", "PUT", "PATCH")


def _send(method, url, body, headers, timeout) -> dict:
    try:
        resp = requests.request(method, url, json=body, headers=headers or None, timeout=timeout)
        resp.raise_for_status()
    except requests.HTTPError as e:
        status = getattr(e.response, "status_code", None)
        raise TransientProviderError(f"HTTP Request node: {method} request failed with HTTP {status}") from e
    except requests.RequestException as e:
        raise TransientProviderError(f"HTTP Request node: {method} request failed: {e.__class__.__name__}") from e

    content_type = resp.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            data = resp.json()
        except ValueError:
            data = resp.text
    else:
        data = resp.text
    logger.info("HTTP Request node: %s %s -> %s", method, url, resp.status_code)
    return {"httpResponse": {"status": resp.status_code, "statusText": resp.reason, "data": data}}


class HttpRequestExecutor(NodeExecutor):
    node_type = NodeType.HTTP_REQUEST
    channel = "http-request-execution"
    label = "HTTP Request node"
    config_model = HttpRequestConfig
    required_fields = (
        ("variable_name", "Variable name is missing"),
        ("endpoint", "Endpoint is missing"),
    )
    template_fields = ("endpoint", "body")

    def validate(self, config):
        super().validate(config)
        if (config.method or "GET").upper() not in METHODS:
            raise ConfigurationError(f"{self.label}: Unsupported method '{config.method}'")

    async def execute(self, config, rendered, secret, *, node_id, context, step):
        method = (config.method or "GET").upper()
        endpoint = rendered["endpoint"]
        body = None
        if method in BODY_METHODS and rendered.get("body"):
            try:
                body = json.loads(rendered["body"])
            except ValueError as e:
                raise ConfigurationError(f"{self.label}: Body is not valid JSON") from e
        headers = {}
        for name, value in (config.headers or {}).items():
            try:
                headers[name] = render_template(value, context) if isinstance(value, str) else str(value)
            except TemplateRenderError as e:
                raise ConfigurationError(f"{self.label}: Could not render header {name}: {e}") from e
        timeout = http_request_timeout()

        return await step.run(
            f"{node_id}:http-request",
            lambda: asyncio.to_thread(_send, method, endpoint, body, headers, timeout),
        )
