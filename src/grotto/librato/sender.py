"""Delivery of metric payloads to the Librato API."""
from __future__ import annotations

import logging

import requests

from ..config import LibratoConfig
from ..errors import DeliveryError
from .metrics import Payload

LOGGER = logging.getLogger(__name__)


class LibratoSender:
    """Perform a single authenticated POST per payload.

    A failed delivery is reported as :class:`DeliveryError` and never retried.
    """

    def __init__(self, config: LibratoConfig) -> None:
        self._url = config.url
        self._auth = (config.email, config.token)
        self._timeout = config.timeout_seconds

    def send(self, payload: Payload) -> None:
        try:
            body = payload.serialize()
        except (TypeError, ValueError) as exc:
            raise DeliveryError(f"Could not serialize payload: {exc}") from exc

        try:
            response = requests.post(
                self._url,
                data=body,
                auth=self._auth,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise DeliveryError(f"Request failed: {exc}") from exc

        try:
            if response.status_code >= 300:
                raise DeliveryError(
                    f"Librato responded with {response.status_code}",
                    status_code=response.status_code,
                )
        finally:
            response.close()

        LOGGER.debug("Delivered %d metrics (status %s)", payload.size(), response.status_code)
