"""Reports package for saving optimization results."""

from prompt_refiner.reports.display_results import display_results
from prompt_refiner.reports.save_iteration_history import save_iteration_history
from prompt_refiner.reports.save_model_report import format_model_report, save_model_report
from prompt_refiner.reports.save_optimization_report import save_optimization_report
from prompt_refiner.reports.save_optimized_prompt import save_optimized_prompt

__all__ = [
    "display_results",
    "format_model_report",
    "save_iteration_history",
    "save_model_report",
    "save_optimization_report",
    "save_optimized_prompt",
]
