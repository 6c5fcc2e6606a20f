"""Matching module for pairwise compatibility scoring."""

from alignmatch.matching.aggregator import (
    CompatibilityBreakdown,
    CompatibilityEngine,
    CompatibilityScore,
    default_scorers,
    summarize,
)
from alignmatch.matching.astrological import AstroSystem, AstrologicalScorer, CallableAstroSystem
from alignmatch.matching.base import Dimension, DimensionResult, DimensionScorer, PairContext
from alignmatch.matching.behavioral import BehavioralScorer
from alignmatch.matching.dealbreakers import DealbreakerScorer
from alignmatch.matching.interests import InterestsScorer
from alignmatch.matching.lifestyle import LifestyleScorer
from alignmatch.matching.psychological import PsychologicalScorer
from alignmatch.matching.signals import SignalResolver, SignalSource, trait_closeness
from alignmatch.matching.values import ValuesVisionScorer

__all__ = [
    "AstroSystem",
    "AstrologicalScorer",
    "BehavioralScorer",
    "CallableAstroSystem",
    "CompatibilityBreakdown",
    "CompatibilityEngine",
    "CompatibilityScore",
    "DealbreakerScorer",
    "Dimension",
    "DimensionResult",
    "DimensionScorer",
    "InterestsScorer",
    "LifestyleScorer",
    "PairContext",
    "PsychologicalScorer",
    "SignalResolver",
    "SignalSource",
    "ValuesVisionScorer",
    "default_scorers",
    "summarize",
    "trait_closeness",
]
