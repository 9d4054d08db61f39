"""Vertex AI prediction client for the Veo video models."""

import logging
from typing import Any, Dict, List, Optional

from google.api_core import exceptions as gapi_exceptions
from google.cloud import aiplatform_v1
from google.protobuf import json_format, struct_pb2

from videogen.errors import ProviderError
from videogen.providers.base import InferenceProvider

logger = logging.getLogger(__name__)


def to_value(obj: Any) -> struct_pb2.Value:
    """Encode plain Python data as a protobuf Value."""
    return json_format.ParseDict(obj, struct_pb2.Value())


class VertexPredictionProvider(InferenceProvider):
    """Calls PredictionService.Predict on a regional publisher model.

    The gRPC client is created on first use so that importing the app
    does not require Google credentials.
    """

    def __init__(
        self,
        project_id: Optional[str],
        region: str,
        model_id: str,
        timeout: float = 600.0,
        client: Optional[aiplatform_v1.PredictionServiceClient] = None,
    ):
        self.project_id = project_id
        self.region = region
        self.model_id = model_id
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> aiplatform_v1.PredictionServiceClient:
        if self._client is None:
            self._client = aiplatform_v1.PredictionServiceClient(
                client_options={"api_endpoint": f"{self.region}-aiplatform.googleapis.com"}
            )
        return self._client

    def endpoint(self) -> str:
        return (
            f"projects/{self.project_id}/locations/{self.region}"
            f"/publishers/google/models/{self.model_id}"
        )

    def predict(
        self,
        endpoint: str,
        instances: List[Dict[str, Any]],
        parameters: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        if not self.project_id:
            raise ProviderError("GCP project is not configured")

        try:
            response = self._get_client().predict(
                endpoint=endpoint,
                instances=[to_value(instance) for instance in instances],
                parameters=to_value(parameters),
                timeout=self.timeout,
            )
        except gapi_exceptions.GoogleAPICallError as exc:
            logger.error("Vertex predict failed code=%s message=%s", exc.code, exc.message)
            raise ProviderError(exc.message or str(exc)) from exc
        except gapi_exceptions.RetryError as exc:
            raise ProviderError(f"Vertex predict timed out: {exc}") from exc

        raw = json_format.MessageToDict(aiplatform_v1.PredictResponse.pb(response))
        predictions = raw.get("predictions", [])
        if not all(isinstance(p, dict) for p in predictions):
            raise ProviderError("Unexpected prediction format from Vertex AI")
        return predictions
