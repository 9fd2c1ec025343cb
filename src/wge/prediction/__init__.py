"""Overflow risk prediction (local formula and AI-backed)."""

from wge.prediction.overflow import (
    LocalPrediction,
    apply_prediction,
    build_overflow_context,
    predict_and_store,
    predict_overflow_ai,
    predict_overflow_local,
    urgency_for,
)

__all__ = [
    "LocalPrediction",
    "apply_prediction",
    "build_overflow_context",
    "predict_and_store",
    "predict_overflow_ai",
    "predict_overflow_local",
    "urgency_for",
]
