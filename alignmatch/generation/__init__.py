"""Generation module for candidate selection and batch match runs."""

from alignmatch.generation.candidates import CandidateFinder, CandidatePool
from alignmatch.generation.generator import MatchGenerator, QuotaLedger, RunSummary

__all__ = [
    "CandidateFinder",
    "CandidatePool",
    "MatchGenerator",
    "QuotaLedger",
    "RunSummary",
]
