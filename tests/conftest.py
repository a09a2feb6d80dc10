"""
Pytest configuration and fixtures for funcworker tests.
"""

import sys
from pathlib import Path

import pytest

# Add the repository root to path for imports
# This allows `from funcworker.converters import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from funcworker.config import WorkerSettings  # noqa: E402
from funcworker.converters import (  # noqa: E402
    ConverterRegistry,
    InputConversionPipeline,
    TypeConverterCache,
    default_converters,
)
from funcworker.definition import EntryPointLocator, FunctionDefinitionBuilder  # noqa: E402
from funcworker.schemas import FunctionLoadRequest, FunctionMetadata  # noqa: E402

FUNCTIONS_DIR = Path(__file__).parent / "fixtures" / "functions"


@pytest.fixture
def deployment_root():
    """Directory holding the sample load units."""
    return str(FUNCTIONS_DIR)


@pytest.fixture
def settings(deployment_root):
    """Worker settings pointing at the sample load units."""
    return WorkerSettings(deployment_root=deployment_root)


@pytest.fixture
def locator():
    """Fresh entry point locator (own module cache)."""
    return EntryPointLocator()


@pytest.fixture
def builder(deployment_root, locator):
    """Definition builder over the sample load units."""
    return FunctionDefinitionBuilder(deployment_root, locator=locator)


@pytest.fixture
def registry():
    """Registry with the default converters."""
    return ConverterRegistry(default_converters())


@pytest.fixture
def pipeline(registry):
    """Conversion pipeline over the default registry."""
    return InputConversionPipeline(registry, TypeConverterCache())


@pytest.fixture
def load_request():
    """Factory for load requests against the sample load units."""

    def make(
        entry_point: str,
        *,
        name: str | None = None,
        script_file: str | None = "orders.py",
        bindings: dict | None = None,
        function_id: str | None = None,
    ) -> FunctionLoadRequest:
        function_name = name or entry_point.rsplit(".", 1)[-1]
        return FunctionLoadRequest(
            function_id=function_id or f"id-{function_name}",
            metadata=FunctionMetadata(
                name=function_name,
                entry_point=entry_point,
                script_file=script_file,
                bindings=bindings or {},
            ),
        )

    return make
