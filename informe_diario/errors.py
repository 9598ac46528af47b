"""Failure taxonomy for one extraction attempt.

Every error is terminal for the attempt that raised it: no partial
``ExtractionResult`` is ever returned and nothing is retried.
"""

from __future__ import annotations


class ExtractionError(RuntimeError):
    pass


class TextExtractionEmpty(ExtractionError):
    """The PDF text layer yielded nothing usable; the model is never called."""


class MissingCredential(ExtractionError):
    """No Gemini API key is configured for the caller."""


class ModelCallFailure(ExtractionError):
    """Network, HTTP or envelope failure while calling the model."""


class ModelCallTimeout(ModelCallFailure):
    pass


class MalformedResponse(ExtractionError):
    """The model answered, but the payload is not a usable extraction."""


class EmptyResponse(MalformedResponse):
    pass


class InvalidJSON(MalformedResponse):
    pass


class IncompleteResult(MalformedResponse):
    pass
