# invoice_studio/gemini_writer.py
from __future__ import annotations

import logging

from google import generativeai as genai

from .config import NOTE_FALLBACK, PREFERRED_MODELS, gemini_api_key

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """The text-generation service could not produce a reply."""


def is_configured() -> bool:
    return bool(gemini_api_key())


def _extract_text(response):
    """Safely extract text from Gemini response."""
    try:
        if getattr(response, "text", None):
            return response.text
    except ValueError:
        # .text raises when the candidate was blocked or has no parts
        pass

    try:
        if response.candidates:
            parts = response.candidates[0].content.parts
            if parts and hasattr(parts[0], "text"):
                return parts[0].text
    except (AttributeError, IndexError, TypeError):
        pass

    return None


def _call_gemini(prompt: str) -> str:
    """
    Try each preferred model in turn and return the first usable reply.
    Raises ServiceError when the key is missing or every model fails.
    """
    api_key = gemini_api_key()
    if not api_key:
        raise ServiceError("API Key not found")

    genai.configure(api_key=api_key)
    logger.debug("Gemini prompt (first 200 chars): %s", prompt[:200])

    last_error = None
    for model_name in PREFERRED_MODELS:
        try:
            logger.info("Trying Gemini model %s", model_name)
            model = genai.GenerativeModel(model_name)
            response = model.generate_content(prompt)
            text = _extract_text(response)

            if text is not None:
                return text

            logger.warning("No usable text from %s", model_name)

        except Exception as e:
            logger.warning("Error with %s: %s", model_name, e)
            last_error = e

    raise ServiceError(f"all Gemini models failed: {last_error}")


def polish_legal_text(raw_text: str) -> str:
    """
    Reword terms into formal contract language, keeping the refund
    conditions intact. Raises ServiceError; an empty reply keeps the input.
    """
    prompt = f"""
You are a professional legal consultant for a high-end financial education and funding company.
Reword the following text to sound professional, legally robust, and authoritative, suitable for a formal invoice or quotation contract.
Keep the core meaning exactly the same, especially regarding the refund conditions (3 failed challenges despite following rules).
Do not add markdown formatting like bolding or headers unless appropriate for a contract clause.

Raw Text: "{raw_text}"
"""
    text = _call_gemini(prompt).strip()
    return text or raw_text


def generate_thank_you_note(client_name: str, company_name: str) -> str:
    """Short footer note; never fails, falls back to a stock sentence."""
    prompt = f"""
Write a short, professional, and motivating thank you note for a trading student named {client_name} from the company {company_name}.
It should appear at the bottom of an invoice. Max 2 sentences.
"""
    try:
        return _call_gemini(prompt).strip()
    except ServiceError as e:
        logger.error("Error generating note: %s", e)
        return NOTE_FALLBACK
