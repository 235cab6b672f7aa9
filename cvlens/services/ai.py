import logging

import openai

from cvlens.errors import UpstreamAIError

log = logging.getLogger(__name__)

def call_ai(client, model: str, system_prompt: str, user_message: str) -> str:
    """Single chat-completion round trip; returns the assistant text."""
    try:
        resp = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
        )
    except openai.APIStatusError as e:
        body = getattr(e, "body", None)
        log.error("AI API error: %s %s", e.status_code, body)
        raise UpstreamAIError(f"AI analysis failed: {e.status_code}", upstream_status=e.status_code) from e
    except openai.APIConnectionError as e:
        log.error("AI API unreachable: %s", e)
        raise UpstreamAIError("AI analysis failed: connection error") from e

    return resp.choices[0].message.content or ""
