from __future__ import annotations

from rest_framework.renderers import JSONRenderer


class EnvelopeJSONRenderer(JSONRenderer):
    """
    Render successful responses as `{"data": ...}`.

    Error bodies (built by `config.exception_handler`), empty bodies and
    payloads that are already `{"data", "meta"}` envelopes pass through as-is.
    """

    envelope_keys = frozenset({"data", "meta"})

    def render(self, data, accepted_media_type=None, renderer_context=None):
        response = (renderer_context or {}).get("response")
        failed = response is not None and response.status_code >= 400
        if not (failed or data is None or self._is_envelope(data)):
            data = {"data": data}
        return super().render(data, accepted_media_type, renderer_context)

    def _is_envelope(self, data) -> bool:
        return isinstance(data, dict) and "data" in data and set(data) <= self.envelope_keys
