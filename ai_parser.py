# ai_parser.py
import base64
import io
import json
import os
import re

import requests
from dotenv import load_dotenv
from PIL import Image, UnidentifiedImageError

from split_calc import ReceiptItem, ReceiptSummary
from utils import parse_amount

load_dotenv()

OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "google/gemini-2.5-flash")
OPENROUTER_URL = os.getenv("OPENROUTER_URL", "https://openrouter.ai/api/v1/chat/completions")
OPENROUTER_TIMEOUT = float(os.getenv("OPENROUTER_TIMEOUT", "60"))

PROMPT = """
Analyze this receipt image.
Extract the following information:
1. The subtotal amount (before tax).
2. The tax amount.
3. The total amount.
4. A list of items purchased with their prices.

If the subtotal is not explicitly listed, calculate it from the total - tax.
Return ONLY valid JSON matching the structure below.

{
  "subtotal": float,
  "tax": float,
  "total": float,
  "currency": "string|null",
  "items": [{"name": "string", "price": float}]
}
"""


class ReceiptParseError(Exception):
    """The receipt could not be turned into a ReceiptSummary."""


class InvalidImageError(ValueError):
    pass


def encode_image(data: bytes) -> str:
    """Re-encode any image Pillow can read as a base64 JPEG."""
    try:
        img = Image.open(io.BytesIO(data))
        img = img.convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImageError("Please upload a valid image file.") from e
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=90)
    return base64.b64encode(buf.getvalue()).decode("ascii")


def call_openrouter(messages: list) -> str:
    headers = {
        "Authorization": f"Bearer {OPENROUTER_API_KEY}",
        "X-Title": "Bill Splitter AI",
        "Content-Type": "application/json",
    }
    payload = {
        "model": OPENROUTER_MODEL,
        "messages": messages,
        "temperature": 0.0,
        "max_tokens": 800,
        "response_format": {"type": "json_object"},
    }
    try:
        resp = requests.post(OPENROUTER_URL, headers=headers, json=payload, timeout=OPENROUTER_TIMEOUT)
    except requests.RequestException as e:
        raise ReceiptParseError(f"OpenRouter request failed: {e}") from e
    if resp.status_code != 200:
        raise ReceiptParseError(f"OpenRouter API error {resp.status_code}: {resp.text}")
    try:
        return resp.json()["choices"][0]["message"]["content"] or ""
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise ReceiptParseError("Unexpected response shape from OpenRouter") from e


def extract_json(raw: str) -> dict:
    try:
        parsed = json.loads(raw)
    except ValueError:
        # model wrapped the object in prose or a ```json fence
        m = re.search(r"\{.*\}", raw, re.S)
        if not m:
            raise ReceiptParseError("No JSON object in model response")
        try:
            parsed = json.loads(m.group(0))
        except ValueError as e:
            raise ReceiptParseError("Malformed JSON in model response") from e
    if not isinstance(parsed, dict):
        raise ReceiptParseError("Model response is not a JSON object")
    return parsed


def summary_from_dict(parsed: dict) -> ReceiptSummary:
    if parsed.get("total") is None:
        raise ReceiptParseError("Receipt total missing from model response")

    items = parsed.get("items")
    if items is not None and not isinstance(items, list):
        raise ReceiptParseError(f"Expected a list of items, got {type(items).__name__}")

    try:
        if items is not None:
            items = tuple(ReceiptItem.from_dict(it) for it in items if isinstance(it, dict))
        subtotal = parsed.get("subtotal")
        currency = parsed.get("currency")
        return ReceiptSummary(
            total=parse_amount(parsed.get("total")),
            tax=parse_amount(parsed.get("tax")),
            subtotal=None if subtotal is None else parse_amount(subtotal),
            currency=str(currency).strip() if currency else None,
            items=items,
        )
    except (TypeError, ValueError, AttributeError) as e:
        raise ReceiptParseError(f"Malformed receipt in model response: {e}") from e


def parse_receipt_image(data: bytes) -> ReceiptSummary:
    image_b64 = encode_image(data)
    messages = [{
        "role": "user",
        "content": [
            {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{image_b64}"}},
            {"type": "text", "text": PROMPT},
        ],
    }]
    raw = call_openrouter(messages)
    if not raw.strip():
        raise ReceiptParseError("No data returned from model")

    print("\n--- RAW AI RESPONSE START ---")
    print(raw)
    print("--- RAW AI RESPONSE END ---\n")

    summary = summary_from_dict(extract_json(raw))
    print(f"[DEBUG] Receipt summary: total={summary.total} tax={summary.tax} "
          f"items={len(summary.items or ())} currency={summary.currency}")
    return summary
