"""Shared fixtures for all tests."""
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def gen_request():
    """A typical request: list files in bash on linux."""
    from uwu.agents.base import GenerationRequest
    return GenerationRequest(prompt="list files", shell="bash", target_os="linux")


@pytest.fixture
def mock_config():
    from config import AppConfig
    return AppConfig(
        provider="gemini",
        gemini_api_key="test-key",
        openai_api_key="test-key",
        anthropic_api_key="test-key",
        ollama_host="http://localhost:11434",
        bedrock_region="us-east-1",
    )
