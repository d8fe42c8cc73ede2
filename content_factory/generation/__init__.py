"""Article generation: drafts, image prompts, assets, single and batch runs."""

from .assets import AssetGenerationStage, calculate_image_count, effective_image_count
from .batch import ANGLES, BatchOrchestrator, BatchResult, unique_angle
from .draft import DraftGenerationStage
from .image_prompts import ImagePromptPlanner, PromptDiversityValidator
from .pipeline import ArticlePipeline

__all__ = [
    "ANGLES",
    "ArticlePipeline",
    "AssetGenerationStage",
    "BatchOrchestrator",
    "BatchResult",
    "DraftGenerationStage",
    "ImagePromptPlanner",
    "PromptDiversityValidator",
    "calculate_image_count",
    "effective_image_count",
    "unique_angle",
]
