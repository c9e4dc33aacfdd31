"""Single-turn chat completion over an OpenAI-compatible endpoint.

Both providers speak the same request/response contract, so the call and
its error translation live here.
"""

import logging

import openai
from openai import OpenAI
from openai.types.chat import ChatCompletion

from ..errors import EmptyResponseError, TransportError

logger = logging.getLogger(__name__)


def complete(
    client: OpenAI,
    model: str,
    prompt: str,
    temperature: float,
    provider: str,
) -> str:
    """Send one user message and return the first choice's text.

    Args:
        client: Configured OpenAI-compatible client
        model: Model identifier
        prompt: User message
        temperature: Sampling temperature
        provider: Provider name for logs and errors

    Returns:
        Model response text

    Raises:
        TransportError: On network failure, non-2xx status or a non-JSON body
        EmptyResponseError: If the provider returned no content
    """
    messages = [{"role": "user", "content": prompt}]

    try:
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
        )
    except openai.APIStatusError as e:
        raise TransportError(
            f"{provider} returned {e.status_code}: {e.response.text[:500]}",
            status_code=e.status_code,
            body=e.response.text,
        ) from e
    except openai.APIResponseValidationError as e:
        raise TransportError(
            f"{provider} returned an unexpected response: {e}",
            status_code=e.status_code,
            body=e.response.text[:500],
        ) from e
    except openai.APIConnectionError as e:
        raise TransportError(f"Network error calling {provider}: {e}") from e

    # Proxies and web UIs answer 200 with HTML; the SDK then hands back the raw text
    if not isinstance(response, ChatCompletion):
        raise TransportError(
            f"{provider} returned a non-JSON response", body=str(response)[:500]
        )

    logger.debug(f"[{provider}] raw response: {response.model_dump_json()}")

    if not response.choices:
        raise EmptyResponseError(f"{provider} returned an empty response")

    content = response.choices[0].message.content
    if not content:
        raise EmptyResponseError(f"{provider} returned empty content", raw_text=content)
    return content
