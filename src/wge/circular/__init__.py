"""Circular-economy valuation."""

from wge.circular.processors import Processor, find_processors, load_processors
from wge.circular.valuator import WASTE_MODELS, value_waste

__all__ = ["Processor", "WASTE_MODELS", "find_processors", "load_processors", "value_waste"]
