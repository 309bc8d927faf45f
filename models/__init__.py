"""
Models package exports.
"""
from models.api_models import (
    Message,
    AIConfigCreate,
    AIConfigUpdate,
    TestConfigRequest,
    GenerateRequest,
    SentenceRequest,
    ApiKeyUpdate,
    ApiKeyTest,
)
from models.gateway_models import (
    AIConfiguration,
    ConfigState,
    ConversationTurn,
    ExtractionResult,
    GenerationResult,
    SecretPlacement,
    TestResult,
    UserCredential,
)

__all__ = [
    'Message',
    'AIConfigCreate',
    'AIConfigUpdate',
    'TestConfigRequest',
    'GenerateRequest',
    'SentenceRequest',
    'ApiKeyUpdate',
    'ApiKeyTest',
    'AIConfiguration',
    'ConfigState',
    'ConversationTurn',
    'ExtractionResult',
    'GenerationResult',
    'SecretPlacement',
    'TestResult',
    'UserCredential',
]
