# OpenAI-compatible AI gateway integration
from app.integrations.ai_gateway.client import AIGatewayClient, AIGatewayError, get_ai_client

__all__ = [
    "AIGatewayClient",
    "AIGatewayError",
    "get_ai_client",
]
