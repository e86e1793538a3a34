from unittest.mock import AsyncMock

import httpx
import pytest
from mongomock_motor import AsyncMongoMockClient

from api.main import create_app
from client.api_client import ChatApiClient
from services.chat_service import ChatService
from services.conversation_service import ConversationService
from services.llm_service import LLMService


@pytest.fixture
def db():
    return AsyncMongoMockClient()["stackbot_test"]


@pytest.fixture
def llm_service():
    service = AsyncMock(spec=LLMService)
    service.generate_reply.return_value = "hi there"
    return service


@pytest.fixture
def conversation_service(db, llm_service):
    return ConversationService(db, llm_service)


@pytest.fixture
def chat_service(db, llm_service):
    return ChatService(db, llm_service)


@pytest.fixture
def app(conversation_service, chat_service):
    app = create_app()
    app.state.conversation_service = conversation_service
    app.state.chat_service = chat_service
    return app


@pytest.fixture
async def http_client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def api_client(http_client):
    return ChatApiClient(base_url="http://testserver", http_client=http_client)
