"""
AI module for creative column content.

Supports:
- Google Gemini content service
- Offline Faker content service
- Dependency-aware batching of AI columns
"""

from synth_forge.ai.batcher import AIContentBatcher, fill_to_count, order_ai_columns
from synth_forge.ai.service import (
    ContentService,
    FakerContentService,
    GeminiContentService,
    build_content_service,
)

__all__ = [
    "AIContentBatcher",
    "ContentService",
    "FakerContentService",
    "GeminiContentService",
    "build_content_service",
    "fill_to_count",
    "order_ai_columns",
]
