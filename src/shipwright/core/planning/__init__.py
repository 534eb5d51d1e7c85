from .code import CodeGenerator, GeneratedFile, LLMCodeGenerator
from .generator import InsightSource, LLMPlanGenerator, PlanGenerationResult, PlanGenerator, PlanningContext
from .workflow import PlanWorkflow

__all__ = [
    "CodeGenerator",
    "GeneratedFile",
    "InsightSource",
    "LLMCodeGenerator",
    "LLMPlanGenerator",
    "PlanGenerationResult",
    "PlanGenerator",
    "PlanWorkflow",
    "PlanningContext",
]
