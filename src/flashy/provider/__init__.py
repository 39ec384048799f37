from .catalog import AVAILABLE_MODELS, DEFAULT_MODEL, ModelOption
from .openrouter import DEFAULT_BASE_URL, OpenRouterClient, classify_http_error
