"""Iterating Generalized Sequential Sampling (IGSS) rule discovery."""

from .config import IGSSConfig, UsefulCriterion, UtilityKind
from .Datasets_loader import ExampleSet, FeatureEncoder, load_dataset
from .errors import ConfigurationError, IGSSError, LearningCancelledError, SelectionNotConvergedError
from .evaluation import ContingencyMatrix, Evaluator
from .GSSRule import GSSRule, RuleSpace
from .gss import Result, SelectionOutcome, SequentialSelector
from .IGSSClassifier import IGSSClassifier
from .IGSSModel import IGSSModel, RuleModel
from .IteratingGSS import IteratingGSS
from .result_store import Priors, ResultStore
from .utility import UtilityFunction

__all__ = [
    "IGSSConfig",
    "UsefulCriterion",
    "UtilityKind",
    "ExampleSet",
    "FeatureEncoder",
    "load_dataset",
    "IGSSError",
    "ConfigurationError",
    "LearningCancelledError",
    "SelectionNotConvergedError",
    "ContingencyMatrix",
    "Evaluator",
    "GSSRule",
    "RuleSpace",
    "Result",
    "SelectionOutcome",
    "SequentialSelector",
    "IGSSClassifier",
    "IGSSModel",
    "RuleModel",
    "IteratingGSS",
    "Priors",
    "ResultStore",
    "UtilityFunction",
]
