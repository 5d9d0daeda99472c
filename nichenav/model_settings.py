"""
NicheNav Backend: Model Settings

Owns the generative model configuration. Every request loads a fresh,
immutable ModelConfig (defaults + stored admin overrides) and hands it to the
pipeline; nothing keeps a process-wide model object around.
"""

from pydantic import ValidationError

from nichenav import db
from nichenav.config import DEFAULT_MODEL_CONFIG, generate_error_code, log
from nichenav.errors import UpstreamFailure
from nichenav.models import ModelConfig, ModelConfigUpdate


async def load_model_config() -> ModelConfig:
    """
    Defaults from config.DEFAULT_MODEL_CONFIG with stored overrides on top.

    Unknown keys in the stored row are ignored. A stored row that no longer
    validates is logged and the defaults are used instead.
    """
    stored = await db.get_model_settings()
    overrides = {k: v for k, v in stored.items() if k in ModelConfig.model_fields and v is not None}
    try:
        return ModelConfig(**{**DEFAULT_MODEL_CONFIG, **overrides})
    except ValidationError as e:
        code = generate_error_code()
        log("ERROR", "stored model settings invalid, using defaults", error=str(e), error_code=code)
        return ModelConfig(**DEFAULT_MODEL_CONFIG)


async def save_model_config(update: ModelConfigUpdate) -> ModelConfig:
    """
    Merge an admin update into the stored overrides and persist it.

    An empty api_key ("") clears a stored key so the environment key applies again.

    Raises:
        UpstreamFailure: the settings row could not be written.
    """
    stored = await db.get_model_settings()
    changes = update.model_dump(exclude_unset=True)
    if changes.get("api_key") == "":
        changes["api_key"] = None
    merged = {**stored, **changes}

    # Validate before writing so a bad combination never reaches the table
    config = ModelConfig(**{**DEFAULT_MODEL_CONFIG, **{k: v for k, v in merged.items() if v is not None}})

    if not await db.update_model_settings(merged):
        raise UpstreamFailure("Could not save model settings")

    log("INFO", "model settings updated", model=config.model, fields=",".join(sorted(changes)))
    return config
