"""
HTTP front for the generation gateway.
Exposes the generate-image and check-task-status functions with CORS handling.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, TypeVar

from flask import Flask, request, jsonify
from flask_cors import CORS
from pydantic import ValidationError as PydanticValidationError

from photoprompt.gateway import GenerationGateway
from photoprompt.models import GatewayRequest, StatusRequest

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ["POST", "OPTIONS"]
ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

GatewayFactory = Callable[[], GenerationGateway]
T = TypeVar("T")


def _run_with_gateway(
    gateway_factory: GatewayFactory, call: Callable[[GenerationGateway], Awaitable[T]]
) -> T:
    async def _run():
        gateway = gateway_factory()
        try:
            return await call(gateway)
        finally:
            await gateway.close()

    return asyncio.run(_run())


def _image_urls_from(body) -> List[str]:
    """String entries of a raw body's ``images`` field, whatever else is wrong with it."""
    images = body.get("images") if isinstance(body, dict) else None
    if not isinstance(images, list):
        return []
    return [url for url in images if isinstance(url, str) and url]


def create_app(gateway_factory: GatewayFactory) -> Flask:
    """Builds the Flask app. A fresh gateway is built, used and closed per request."""
    app = Flask(__name__)
    CORS(
        app,
        resources={r"/functions/*": {"origins": "*"}},
        send_wildcard=True,
        methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
    )

    @app.route('/functions/v1/generate-image', methods=['POST'])
    def generate_image():
        """Generate one image from a prompt and optional reference image URLs"""
        body = request.get_json(silent=True) or {}
        try:
            gateway_request = GatewayRequest.model_validate(body)
        except PydanticValidationError as e:
            leftover = _image_urls_from(body)
            if leftover:
                _run_with_gateway(
                    gateway_factory, lambda gateway: gateway.release_inputs(leftover)
                )
            return jsonify({
                'success': False,
                'error': f'Invalid request body: {e.errors()[0]["msg"]}'
            }), 400

        response = _run_with_gateway(
            gateway_factory, lambda gateway: gateway.handle(gateway_request)
        )
        status = 200 if response.success else 400
        return jsonify(response.model_dump(exclude_none=True)), status

    @app.route('/functions/v1/check-task-status', methods=['POST'])
    def check_task_status():
        """Report the state of an asynchronous generation task"""
        try:
            status_request = StatusRequest.model_validate(request.get_json(silent=True) or {})
        except PydanticValidationError:
            return jsonify({
                'success': False,
                'error': 'task_id is required'
            }), 400

        response = _run_with_gateway(
            gateway_factory, lambda gateway: gateway.check_status(status_request.task_id)
        )
        status = 200 if response.success else 400
        return jsonify(response.model_dump(exclude_none=True)), status

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'Endpoint not found'
        }), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({
            'success': False,
            'error': 'Internal server error'
        }), 500

    return app
