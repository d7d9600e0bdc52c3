"""Client for the hosted completion gateway.

The gateway speaks the OpenAI chat-completions shape:

    POST <endpoint>
    {model, messages: [{role, content}], temperature, max_tokens}

We call it with ``requests`` and classify every failure into a
``GatewayError`` subclass. Nothing here retries; the caller decides.
"""

import threading
import time

import requests
from flask import current_app

from .prompts import (
    ANALYSIS_TEMPERATURE,
    CORRECTION_TEMPERATURE,
    build_analysis_request,
    build_correction_request,
)

DEFAULT_TIMEOUT_SEC = 300
DEFAULT_MAX_TOKENS = 65536

TIMEOUT_MESSAGE = "Request timed out (over {secs} seconds). Please shorten the transcript and retry."
EMPTY_RESULT_MESSAGE = "Empty AI result, please retry."


class GatewayError(RuntimeError):
    """Any failure talking to the completion gateway."""

    def __init__(self, message, status=None):
        super().__init__(message)
        self.status = status


class GatewayTimeoutError(GatewayError):
    pass


class EmptyResultError(GatewayError):
    pass


class GatewayConfigError(GatewayError):
    pass


def _error_message_from_body(response):
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    err = body.get('error')
    if isinstance(err, dict):
        return err.get('message') or None
    if isinstance(err, str) and err:
        return err
    return body.get('message') or None


class GatewayClient:
    def __init__(self, endpoint, api_key, model, timeout=DEFAULT_TIMEOUT_SEC, max_tokens=DEFAULT_MAX_TOKENS,
                 correction_temperature=CORRECTION_TEMPERATURE, analysis_temperature=ANALYSIS_TEMPERATURE):
        self.endpoint = endpoint
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.correction_temperature = correction_temperature
        self.analysis_temperature = analysis_temperature

    @classmethod
    def from_config(cls, config):
        return cls(
            endpoint=config.get('LLM_GATEWAY_URL'),
            api_key=config.get('LLM_GATEWAY_API_KEY'),
            model=config.get('LLM_MODEL'),
            timeout=config.get('LLM_TIMEOUT_SEC', DEFAULT_TIMEOUT_SEC),
            max_tokens=config.get('LLM_MAX_TOKENS', DEFAULT_MAX_TOKENS),
            correction_temperature=config.get('CORRECTION_TEMPERATURE', CORRECTION_TEMPERATURE),
            analysis_temperature=config.get('ANALYSIS_TEMPERATURE', ANALYSIS_TEMPERATURE),
        )

    # -- operations -------------------------------------------------------

    def correct_transcript(self, transcript: str, metadata: dict) -> str:
        if not transcript or not transcript.strip():
            raise GatewayError("Transcript must not be empty.", status=400)
        req = build_correction_request(transcript, metadata, temperature=self.correction_temperature)
        return self.complete(req.system_prompt, req.messages, req.temperature)

    def analyze_transcript(self, transcript: str, module, history=None) -> str:
        if not transcript or not transcript.strip():
            raise GatewayError("Transcript must not be empty.", status=400)
        req = build_analysis_request(transcript, module, history, temperature=self.analysis_temperature)
        return self.complete(req.system_prompt, req.messages, req.temperature)

    # -- transport ----------------------------------------------------------

    def _post_with_deadline(self, headers, body):
        """POST ``body`` and wait at most ``self.timeout`` seconds in total.

        requests' own timeout bounds each socket read, so a server that keeps
        trickling bytes would never trip it. The request runs on a daemon
        thread and the caller stops waiting at the deadline.
        """
        outcome = {}

        def send():
            try:
                outcome['response'] = requests.post(self.endpoint, headers=headers, json=body, timeout=self.timeout)
            except Exception as e:
                # re-raised in the calling thread below
                outcome['error'] = e

        worker = threading.Thread(target=send, name='gateway-call', daemon=True)
        worker.start()
        worker.join(self.timeout)
        if worker.is_alive():
            raise requests.exceptions.Timeout(f"no complete response within {self.timeout}s")
        if 'error' in outcome:
            raise outcome['error']
        return outcome['response']

    def complete(self, system_prompt: str, messages, temperature: float) -> str:
        """Send one chat-completion request and return the first choice's text."""
        if not self.api_key:
            raise GatewayConfigError("Gateway credential not configured.")
        if not self.endpoint:
            raise GatewayConfigError("Gateway endpoint not configured.")

        body = {
            'model': self.model,
            'messages': [{'role': 'system', 'content': system_prompt}] + list(messages),
            'temperature': temperature,
            'max_tokens': self.max_tokens,
        }
        headers = {'Authorization': f'Bearer {self.api_key}', 'Content-Type': 'application/json'}

        started = time.monotonic()
        current_app.logger.info('Gateway call: model=%s messages=%d temperature=%s',
                                self.model, len(body['messages']), temperature)
        try:
            r = self._post_with_deadline(headers, body)
        except requests.exceptions.Timeout as e:
            current_app.logger.error('Gateway call timed out after %.1fs', time.monotonic() - started)
            raise GatewayTimeoutError(TIMEOUT_MESSAGE.format(secs=int(self.timeout))) from e
        except requests.exceptions.RequestException as e:
            current_app.logger.error('Gateway unreachable: %s', e)
            raise GatewayError(f"Failed to reach the AI gateway: {e}") from e

        if not r.ok:
            message = _error_message_from_body(r) or f"Gateway error {r.status_code}"
            current_app.logger.error('Gateway HTTP error %s: %s', r.status_code, (r.text or '')[:1000])
            raise GatewayError(message, status=r.status_code)

        try:
            jr = r.json()
        except ValueError as e:
            raise GatewayError("Gateway returned a malformed response.", status=r.status_code) from e

        text = ''
        try:
            text = jr.get('choices', [])[0].get('message', {}).get('content') or ''
        except (AttributeError, IndexError, TypeError):
            text = ''
        if not isinstance(text, str) or not text.strip():
            raise EmptyResultError(EMPTY_RESULT_MESSAGE)

        current_app.logger.info('Gateway call finished in %.1fs (%d chars)', time.monotonic() - started, len(text))
        return text
