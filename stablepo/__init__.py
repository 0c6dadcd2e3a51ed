from stablepo.config import Config
from stablepo.services.session import ExtractionSession

__version__ = '0.1.0'


def create_session(config_class=Config, **overrides):
    """Build an initialised ExtractionSession from settings plus keyword overrides."""
    config = config_class(**overrides)
    session = ExtractionSession(config)
    return session.init()
