# storefront/integrations/message_writer.py
import requests
from requests import RequestException

from storefront.integrations.base import StoreContext, EVENT_ORDER_CREATED, EVENT_ORDER_STATUS_CHANGED
from storefront.utils.settings import Settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

GROQ_URL = "https://api.groq.com/openai/v1/chat/completions"
GROQ_MODEL = "llama-3.3-70b-versatile"

LANGUAGE_NAMES = {
    "en": "English",
    "fr": "French",
    "ar": "Arabic",
}

_SYSTEM_PROMPT = """You are a WhatsApp notification assistant for an e-commerce store. Generate a friendly, concise WhatsApp message to send to the customer about their order.

Rules:
- Write the ENTIRE message in {language}.
- Use WhatsApp formatting: *bold* for emphasis, _italic_ for subtle text.
- Keep it short (4-8 lines max).
- Include the order number, items ordered (if available), and total.
- Be warm and professional, thank the customer.
- Do NOT include any links, emojis, or placeholder text.
- Do NOT include greetings like "Dear customer", use their first name.
- Output ONLY the message text, nothing else."""


def _format_items(items: list[dict], currency: str) -> str:
    if not items:
        return "Items not available"
    lines = []
    for item in items:
        options = item.get("variant_options") or {}
        variant = f" ({', '.join(str(v) for v in options.values())})" if options else ""
        lines.append(f"- {item.get('product_name')}{variant} x{item.get('quantity')} - {item.get('product_price')} {currency}")
    return "\n".join(lines)


def _build_context(event_type: str, payload: dict, store: StoreContext) -> str | None:
    if event_type == EVENT_ORDER_CREATED:
        return (
            f"Event: New order placed\n"
            f"Store: {store.name}\n"
            f"Order #{payload.get('order_number')}\n"
            f"Customer: {payload.get('customer_name')}\n"
            f"Total: {payload.get('total')} {store.currency}\n"
            f"Items ordered:\n{_format_items(payload.get('items') or [], store.currency)}"
        )
    if event_type == EVENT_ORDER_STATUS_CHANGED:
        return (
            f"Event: Order status updated\n"
            f"Store: {store.name}\n"
            f"Order #{payload.get('order_number')}\n"
            f"Customer: {payload.get('customer_name')}\n"
            f"Previous status: {payload.get('old_status')}\n"
            f"New status: {payload.get('new_status')}"
        )
    return None


def generate_message(event_type: str, payload: dict, store: StoreContext, settings: Settings, timeout: int = 10) -> str | None:
    """
    Zewnetrzny generator tekstu (czarna skrzynka).
    Zwraca tekst albo None - wtedy handler uzywa szablonu.
    """
    if not settings.groq_api_key:
        return None

    context = _build_context(event_type, payload, store)
    if context is None:
        return None

    language = LANGUAGE_NAMES.get(store.language, "English")

    try:
        resp = requests.post(
            GROQ_URL,
            headers={"Authorization": f"Bearer {settings.groq_api_key}"},
            json={
                "model": GROQ_MODEL,
                "messages": [
                    {"role": "system", "content": _SYSTEM_PROMPT.format(language=language)},
                    {"role": "user", "content": context},
                ],
                "max_tokens": 300,
                "temperature": 0.7,
            },
            timeout=timeout,
        )
        if not resp.ok:
            logger.warning(f"Message generation returned {resp.status_code}, falling back to template")
            return None
        data = resp.json()
    except (RequestException, ValueError) as e:
        logger.warning(f"Message generation failed: {e}")
        return None

    choices = data.get("choices") or []
    if not choices:
        return None
    text = ((choices[0].get("message") or {}).get("content") or "").strip()
    return text or None
