"""Shared fixtures for GraphLD tests."""
import pytest

from graphld.config import ContextConfig, ExpansionConfig, GraphLDConfig
from graphld.context import ContextEngine
from graphld.model import Model

from helpers import JOHN, PERSON_CONTEXT, RecordingEngine


@pytest.fixture
def config():
    return GraphLDConfig(
        expansion=ExpansionConfig(max_depth=16),
        context=ContextConfig(inline_contexts={"person": PERSON_CONTEXT}),
    )


@pytest.fixture
def context_engine(config):
    return ContextEngine(config.context)


@pytest.fixture
def engine():
    return RecordingEngine()


@pytest.fixture
def model(engine, context_engine, config):
    return Model(engine, context_engine=context_engine, config=config)


@pytest.fixture
def john_doc():
    return {
        "@context": "person",
        "@id": JOHN,
        "name": "John Lennon",
        "born": "1940-10-09",
    }
