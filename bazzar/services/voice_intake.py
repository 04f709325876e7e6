"""
Service: Voice intake
Transcribes an audio clip with Whisper and extracts order items with GPT-4
"""
import json
import logging
import math
from flask import current_app
from openai import OpenAI, OpenAIError

from ..errors import ServiceUnavailable
from ..utils.pricing import estimate_items_value, lookup_unit_price
from .order_parser import parse_items

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.95

EXTRACTION_PROMPT = """
You extract grocery order items from Hindi/English voice transcripts of
Indian street vendors.

Return only JSON in this format:
{
  "items": [
    {"item": "rice", "quantity": 5, "unit": "kg", "price": 80},
    {"item": "dal", "quantity": 2, "unit": "kg", "price": 120}
  ],
  "language": "hindi"
}

Rules:
- Translate item names to simple English (aloo -> potato, pyaz -> onion).
- "price" is a reasonable Indian wholesale market price per unit in rupees.
- If no quantity is mentioned, assume 1 kg.
"""


def get_client():
    """OpenAI client, or ServiceUnavailable when no key is configured"""
    api_key = current_app.config.get("OPENAI_API_KEY")
    if not api_key:
        raise ServiceUnavailable("Voice processing is not configured")
    return OpenAI(api_key=api_key)


def transcribe_audio(client, filename, data, content_type, language=None):
    """
    Transcribes audio bytes with Whisper

    Returns:
        (transcript, language, confidence)
    """
    transcription = client.audio.transcriptions.create(
        model=current_app.config["OPENAI_TRANSCRIPTION_MODEL"],
        file=(filename, data, content_type),
        language=language or current_app.config["VOICE_DEFAULT_LANGUAGE"],
        response_format="verbose_json",
    )
    transcript = (transcription.text or "").strip()
    detected = getattr(transcription, "language", None) or language
    return transcript, detected, _confidence(getattr(transcription, "segments", None))


def _confidence(segments):
    # Whisper reports a mean log-probability per segment
    logprobs = [s.avg_logprob for s in segments or [] if getattr(s, "avg_logprob", None) is not None]
    if not logprobs:
        return DEFAULT_CONFIDENCE
    return round(min(1.0, max(0.0, math.exp(sum(logprobs) / len(logprobs)))), 3)


def extract_items(client, transcript):
    """
    Extracts structured items from a transcript with the language model.
    Falls back to the text parser when the model answer is not a JSON
    object or items list.

    Returns:
        (items, language)
    """
    response = client.chat.completions.create(
        model=current_app.config["OPENAI_EXTRACTION_MODEL"],
        messages=[
            {"role": "system", "content": EXTRACTION_PROMPT},
            {"role": "user", "content": f'Extract grocery items from this transcript: "{transcript}"'},
        ],
        temperature=0.3,
    )
    content = response.choices[0].message.content or ""

    try:
        payload = json.loads(content)
    except json.JSONDecodeError:
        payload = None

    # A bare list is taken as the items array
    if isinstance(payload, list):
        return normalize_items(payload), None
    if not isinstance(payload, dict) or not isinstance(payload.get("items") or [], list):
        logger.warning("Extraction answer was not a JSON object, parsing transcript as text: %r", content[:200])
        return normalize_items(parse_items(transcript)), None

    return normalize_items(payload.get("items") or []), payload.get("language")


def normalize_items(raw_items):
    """Maps model/client item dicts onto {name, quantity, unit, estimated_price}"""
    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        name = str(raw.get("item") or raw.get("name") or "").strip()
        try:
            quantity = float(raw.get("quantity") or 1)
        except (TypeError, ValueError):
            quantity = 1.0
        if not name or not math.isfinite(quantity) or quantity <= 0:
            continue

        price = raw.get("price", raw.get("estimated_price"))
        try:
            price = float(price) if price is not None else lookup_unit_price(name)
        except (TypeError, ValueError):
            price = lookup_unit_price(name)
        if not math.isfinite(price) or price < 0:
            price = lookup_unit_price(name)

        items.append({
            "name": name,
            "quantity": quantity,
            "unit": str(raw.get("unit") or "kg").strip(),
            "estimated_price": price,
        })
    return items


def process_voice_order(filename, data, content_type, language=None):
    """
    Full intake: audio -> transcript -> items

    Returns:
        {"transcript", "language", "confidence", "items", "total"}
    """
    client = get_client()

    try:
        transcript, detected_language, confidence = transcribe_audio(
            client, filename, data, content_type, language
        )
        logger.info("Transcribed %s (%d bytes): %r", filename, len(data), transcript[:120])

        items, extracted_language = extract_items(client, transcript) if transcript else ([], None)
    except OpenAIError as e:
        logger.error("OpenAI processing error: %s", e)
        raise ServiceUnavailable("Voice processing failed, please try again or type the order") from e

    return {
        "transcript": transcript,
        "language": extracted_language or detected_language,
        "confidence": confidence,
        "items": items,
        "total": estimate_items_value(items),
    }
