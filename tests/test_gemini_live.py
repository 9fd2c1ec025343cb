import os
from datetime import datetime, timezone

import pytest

from wge.config import Settings
from wge.llm.gemini import GeminiClient, Ok
from wge.models import Ward
from wge.prediction.overflow import predict_overflow_ai


pytestmark = pytest.mark.skipif(
    not os.getenv("RUN_LIVE_API_TESTS") or not os.getenv("GOOGLE_API_KEY"),
    reason="Set RUN_LIVE_API_TESTS=1 and GOOGLE_API_KEY to run live API tests",
)


def test_overflow_prediction_against_gemini():
    settings = Settings()
    ward = Ward.model_validate(
        {
            "id": "ward-live",
            "ward_number": 12,
            "name": "Live check",
            "current_load": 85,
            "active_reports": {"total": 14},
            "infrastructure": {"bins": {"total": 20, "capacity": 100}},
        }
    )
    result = predict_overflow_ai(
        ward, [], GeminiClient(settings), now=datetime.now(timezone.utc)
    )
    if not isinstance(result, Ok):
        pytest.skip(f"Gemini unavailable: {result.kind}")

    assert 0 <= result.payload.overflow_probability <= 100
    assert result.payload.urgency_level in {"low", "medium", "high", "critical"}
