"""Entry points for binding a Model to a graph engine."""

import logging
from typing import Optional

from graphld.config import ConfigValidator, GraphLDConfig
from graphld.context import ContextEngine
from graphld.engines.base import GraphEngine
from graphld.engines.cayley import CayleyGraphEngine
from graphld.errors import ValidationError
from graphld.model import Model

logger = logging.getLogger(__name__)


def connect(
    url: Optional[str] = None,
    *,
    engine: Optional[GraphEngine] = None,
    config: Optional[GraphLDConfig] = None,
    context_engine: Optional[ContextEngine] = None,
) -> Model:
    """
    Create a Model.

    Args:
        url: Cayley server URL (overrides ``config.endpoint.url``)
        engine: An engine to use instead of connecting to a server
        config: Model configuration; defaults to ``GraphLDConfig.from_env()``
        context_engine: Custom JSON-LD context engine

    Example:
        model = connect("http://localhost:64210/")
        doc = await model.find(["http://x/john"], "http://json-ld.org/contexts/person.jsonld")
    """
    config = config or GraphLDConfig.from_env()
    if url:
        config.endpoint.url = url
    ConfigValidator.validate_or_raise(config)

    if engine is None:
        if not config.endpoint.url:
            raise ValidationError("Missing connection url string.")
        engine = CayleyGraphEngine(config.endpoint)
        logger.info(f"Connected to Cayley at {config.endpoint.url}")

    return Model(engine, context_engine=context_engine, config=config)
