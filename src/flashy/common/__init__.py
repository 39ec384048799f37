from .logging_config import ContextFormatter, setup_logging
