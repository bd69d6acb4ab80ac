"""
ServicesLib - Remote collaborators

HTTP clients for image generation, prompt moderation and uploads, and the
workflow that ties generation to an edit session.
"""

from PC_Libs.ServicesLib.generation_client import GenerationClient
from PC_Libs.ServicesLib.moderation_client import ModerationClient, ModerationResult
from PC_Libs.ServicesLib.upload_client import UploadClient
from PC_Libs.ServicesLib.generation_workflow import GenerationOutcome, GenerationWorkflow

__all__ = [
    "GenerationClient",
    "ModerationClient",
    "ModerationResult",
    "UploadClient",
    "GenerationOutcome",
    "GenerationWorkflow",
]
