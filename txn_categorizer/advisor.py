import logging
from typing import List, Optional

import google.generativeai as genai

from .config import get_settings

logger = logging.getLogger("txn_categorizer.advisor")

_configured_key: Optional[str] = None


def _model():
    global _configured_key
    settings = get_settings()
    if _configured_key != settings.gemini_api_key:
        genai.configure(api_key=settings.gemini_api_key)
        _configured_key = settings.gemini_api_key
    return genai.GenerativeModel(settings.gemini_model)


def get_ai_rationale(transaction: str, category: str, influences: List[str]) -> Optional[str]:
    """One-sentence Gemini rationale for a keyword explanation.

    Returns None when no API key is configured or the call fails.
    """
    if not get_settings().gemini_api_key:
        return None

    prompt = f"""
        You are explaining an automatic bank transaction categorization.
        Transaction: {transaction}
        Assigned category: {category}
        Influential words: {", ".join(influences)}

        In one friendly sentence, explain why these words point to the {category} category.
        Return plain text only.
        """

    # Call to AI engine with a "Safety Shield"
    try:
        response = _model().generate_content(prompt)
        text = (response.text or "").strip()
    except Exception as e:
        logger.warning("Gemini rationale unavailable: %s", e)
        return None
    return text or None
