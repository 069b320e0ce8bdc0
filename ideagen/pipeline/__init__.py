from ideagen.pipeline.engine import MODEL_STEPS, STEP_MESSAGES, GenerationEngine
from ideagen.pipeline.promotion import build_idea, promote_session, regenerate_documents

__all__ = [
    "GenerationEngine",
    "MODEL_STEPS",
    "STEP_MESSAGES",
    "build_idea",
    "promote_session",
    "regenerate_documents",
]
