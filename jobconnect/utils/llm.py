from typing import Optional

import requests

from jobconnect.utils.config import get_settings
from jobconnect.utils.exceptions import ModelError


def ollama_generate(prompt: str, model: Optional[str] = None, temperature: Optional[float] = None, timeout: Optional[float] = None) -> str:
    settings = get_settings()
    model = model or settings.llm_model
    url = f"{settings.ollama_base_url}/api/generate"
    try:
        resp = requests.post(
            url,
            json={
                "model": model,
                "prompt": prompt,
                "options": {"temperature": settings.llm_temperature if temperature is None else temperature},
                "stream": False  # one JSON body, not NDJSON chunks
            },
            timeout=timeout or settings.llm_timeout,
        )
        resp.raise_for_status()
    except requests.RequestException as e:
        raise ModelError(f"Model request failed: {e}", model_name=model, cause=e) from e

    text = (resp.json().get("response") or "").strip()
    if not text:
        raise ModelError("Empty response from model", model_name=model)
    return text
