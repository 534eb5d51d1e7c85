from .classifier import classify_error
from .ledger import JsonlOutcomeStore, OutcomeLedger, OutcomeStore
from .schemas import ErrorClassification, OutcomeRecord, OutcomeSummary, SkillStats
from .skills import action_type_for_step, map_step_to_skill

__all__ = [
    "ErrorClassification",
    "JsonlOutcomeStore",
    "OutcomeLedger",
    "OutcomeRecord",
    "OutcomeStore",
    "OutcomeSummary",
    "SkillStats",
    "action_type_for_step",
    "classify_error",
    "map_step_to_skill",
]
