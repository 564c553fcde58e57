"""AWS Bedrock vision client wrapper with timeout and error mapping."""

import asyncio
import logging
import os
from typing import Dict, List, Optional, Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv

from .errors import (
    VisionAPIError,
    ErrorType,
    ErrorContext,
    handle_vision_api_error,
)

load_dotenv()

logger = logging.getLogger(__name__)


class BedrockClient:
    """
    Wrapper for the AWS Bedrock Runtime Converse API used for document images.

    One prompt plus one image goes out, raw text comes back. Calls are not
    retried here; retry policy belongs to the upload orchestration layer.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        model_id: str = "amazon.nova-pro-v1:0",
        timeout: float = 30,
        runtime: Optional[Any] = None
    ):
        """
        Initialize Bedrock client.

        Args:
            region: AWS region for Bedrock service
            model_id: Vision-capable model ID
            timeout: Request timeout in seconds (connect and read)
            runtime: Optional pre-built bedrock-runtime client
        """
        self.region = region
        self.model_id = model_id
        self.timeout = timeout

        bearer_token = os.getenv("AWS_BEARER_TOKEN_BEDROCK") or os.getenv("BEDROCK_API_KEY")
        using_bearer_token = bool(bearer_token and bearer_token.strip())
        if using_bearer_token and not os.getenv("AWS_BEARER_TOKEN_BEDROCK"):
            os.environ["AWS_BEARER_TOKEN_BEDROCK"] = bearer_token.strip()

        if runtime is None:
            config_kwargs: Dict[str, Any] = {
                "region_name": region,
                "connect_timeout": timeout,
                "read_timeout": timeout,
                "retries": {"max_attempts": 0},
            }
            if using_bearer_token:
                config_kwargs["signature_version"] = "bearer"
            runtime = boto3.client("bedrock-runtime", config=Config(**config_kwargs))

        self.runtime = runtime

        logger.info(
            f"Initialized BedrockClient: region={region}, model={model_id}, "
            f"auth={'api_key' if using_bearer_token else 'iam'}"
        )

    async def analyze_image(
        self,
        prompt: str,
        image_bytes: bytes,
        image_format: str = "jpeg",
        max_tokens: int = 1500,
        temperature: float = 0.0
    ) -> str:
        """
        Send one image and a prompt to the vision model.

        Args:
            prompt: Processor-specific extraction prompt
            image_bytes: Raw image bytes (boto3 handles encoding)
            image_format: "jpeg", "png", "gif" or "webp"
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature (0.0 = deterministic)

        Returns:
            Concatenated text content of the model reply

        Raises:
            VisionAPIError: On API errors or when the call exceeds the timeout
        """
        messages = self._build_messages(prompt, image_bytes, image_format)
        params = {
            "modelId": self.model_id,
            "messages": messages,
            "inferenceConfig": {
                "temperature": temperature,
                "maxTokens": max_tokens
            }
        }

        logger.debug(f"Invoking {self.model_id}: image={len(image_bytes)} bytes, format={image_format}")

        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self.runtime.converse, **params),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Vision model call timed out after {self.timeout}s")
            raise VisionAPIError.timeout("analyze_image", self.timeout)
        except ClientError as e:
            handle_vision_api_error(e, "analyze_image", logger, fallback_action="Report failed result")
        except BotoCoreError as e:
            logger.error(f"Bedrock transport error: {str(e)}")
            raise VisionAPIError(
                ErrorContext(
                    error_type=ErrorType.UPSTREAM_SERVICE_ERROR,
                    message=f"Bedrock transport error: {str(e)}",
                    recoverable=True,
                    original_exception=e
                )
            )

        parsed = self._parse_converse_response(response)
        logger.info(
            f"Vision call successful: stop_reason={parsed['stop_reason']}, usage={parsed['usage']}"
        )
        return parsed["text"]

    @staticmethod
    def _build_messages(prompt: str, image_bytes: bytes, image_format: str) -> List[Dict[str, Any]]:
        return [
            {
                "role": "user",
                "content": [
                    {
                        "image": {
                            "format": image_format,
                            "source": {"bytes": image_bytes}
                        }
                    },
                    {"text": prompt}
                ]
            }
        ]

    @staticmethod
    def _parse_converse_response(response: Dict[str, Any]) -> Dict[str, Any]:
        """
        Parse Converse API response into a simplified format.

        Args:
            response: Raw response from Converse API

        Returns:
            Dict with 'text', 'stop_reason' and 'usage'
        """
        message = response.get("output", {}).get("message", {})
        text_parts = [
            block["text"] for block in message.get("content", []) if "text" in block
        ]
        return {
            "text": "\n".join(text_parts),
            "stop_reason": response.get("stopReason", "unknown"),
            "usage": response.get("usage", {}),
        }
