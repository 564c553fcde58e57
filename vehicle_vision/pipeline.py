"""
Vision processing pipeline.

Runs one image through its document processor: prompt, vision model call,
parse, validate, enrich, format. Every call yields a
``DocumentProcessingResult`` and records one metrics request; upstream and
parse failures become failed results instead of exceptions.
"""

import asyncio
import io
import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from .models.document import (
    BatchDocument,
    BatchResult,
    BatchStatistics,
    DocumentProcessingResult,
    ProcessingContext,
    ValidationResult,
)
from .monitoring.metrics import VisionMetricsCollector
from .processors.base import DocumentProcessor, ProcessorRegistry, build_default_registry
from .timeline.confidence import confidence_warning, extract_confidence
from .utils.bedrock_client import BedrockClient
from .utils.config import Config
from .utils.errors import (
    DocumentProcessingError,
    ErrorType,
    ProcessorRegistryError,
    VisionAPIError,
    VisionProcessingError,
)
from .utils.logging import with_context
from .utils.vin_decoder import VinDecoder

logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_FORMATS = ("jpeg", "png", "gif", "webp")


def detect_image_format(image_bytes: bytes) -> Tuple[Optional[str], bytes]:
    """
    Detect the image format, converting formats the model cannot read.

    Magic bytes are checked first; anything else is opened with Pillow and,
    when it is not a supported format, re-encoded as PNG.

    Returns:
        (format, bytes to send); format is None when the bytes are not an image
    """
    if image_bytes.startswith(b'\xff\xd8\xff'):
        return "jpeg", image_bytes
    if image_bytes.startswith(b'\x89PNG\r\n\x1a\n'):
        return "png", image_bytes
    if image_bytes.startswith(b'GIF87a') or image_bytes.startswith(b'GIF89a'):
        return "gif", image_bytes
    if image_bytes.startswith(b'RIFF') and b'WEBP' in image_bytes[:12]:
        return "webp", image_bytes

    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            detected = (image.format or "").lower()
            if detected in SUPPORTED_IMAGE_FORMATS:
                return detected, image_bytes
            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Unrecognized image data: {e}")
        return None, image_bytes

    logger.info(f"Converted {detected or 'unknown'} image to PNG")
    return "png", buffer.getvalue()


class VisionPipeline:
    """
    Orchestrates document processing against a vision model.

    Attributes:
        registry: ProcessorRegistry used to look up processors
        vision_client: Object with ``async analyze_image(prompt, image_bytes, image_format, max_tokens, temperature)``
        metrics: VisionMetricsCollector receiving one record per document
    """

    def __init__(
        self,
        registry: ProcessorRegistry,
        vision_client: Any,
        metrics: VisionMetricsCollector,
        timeout_seconds: float = 30,
        enrichment_timeout_seconds: float = 10,
        max_tokens: int = 1500,
        temperature: float = 0.0,
        max_batch_size: Optional[int] = None
    ):
        self.registry = registry
        self.vision_client = vision_client
        self.metrics = metrics
        self.timeout_seconds = timeout_seconds
        self.enrichment_timeout_seconds = enrichment_timeout_seconds
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_batch_size = max_batch_size

        logger.info(
            f"Initialized VisionPipeline: {len(registry)} processors, "
            f"timeout={timeout_seconds}s, enrichment_timeout={enrichment_timeout_seconds}s"
        )

    async def process_document(
        self,
        image_bytes: bytes,
        document_type: str,
        context: Optional[ProcessingContext] = None
    ) -> DocumentProcessingResult:
        """
        Process one document image.

        Args:
            image_bytes: Raw image bytes
            document_type: Registered document type
            context: Optional processing context (defaults to one for document_type)

        Returns:
            DocumentProcessingResult; ``success=False`` carries error and error_code
        """
        context = context or ProcessingContext(document_type=document_type)

        @with_context(document_type=document_type, session_id=context.session_id)
        async def run() -> DocumentProcessingResult:
            return await self._run(image_bytes, document_type, context)

        start_time = time.perf_counter()
        try:
            result = await run()
        except Exception as e:
            logger.error(f"Unexpected error processing {document_type}: {e}", exc_info=True)
            result = DocumentProcessingResult.failure(
                document_type,
                f"Unexpected error: {e}",
                ErrorType.UNKNOWN_ERROR.value,
            )
        result.processing_time_ms = (time.perf_counter() - start_time) * 1000

        self.metrics.record_request(
            document_type,
            result.processing_time_ms,
            result.success,
            confidence=result.confidence if result.success else None,
            error_code=result.error_code,
        )

        if result.success:
            logger.info(
                f"Processed {document_type}: valid={result.validation.valid}, "
                f"confidence={result.confidence:.2f} in {result.processing_time_ms:.0f}ms"
            )
        else:
            logger.warning(f"Failed to process {document_type}: [{result.error_code}] {result.error}")
        return result

    async def _run(
        self,
        image_bytes: bytes,
        document_type: str,
        context: ProcessingContext
    ) -> DocumentProcessingResult:
        try:
            processor = self.registry.get(document_type)
        except ProcessorRegistryError as e:
            return self._failure(document_type, e)

        image_format, payload_bytes = detect_image_format(image_bytes)
        if image_format is None:
            return DocumentProcessingResult.failure(
                document_type,
                "Unsupported or unreadable image data",
                ErrorType.UNSUPPORTED_IMAGE.value,
            )

        prompt = processor.get_prompt(context)
        logger.debug(f"Prompt for {document_type}: {len(prompt)} characters, format={image_format}")

        try:
            raw_text = await asyncio.wait_for(
                self.vision_client.analyze_image(
                    prompt,
                    payload_bytes,
                    image_format=image_format,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            return self._failure(document_type, VisionAPIError.timeout("analyze_image", self.timeout_seconds))
        except VisionProcessingError as e:
            return self._failure(document_type, e)

        raw_text = raw_text or ""
        try:
            data = processor.parse(raw_text, context)
        except Exception as e:
            error = DocumentProcessingError.parse_failed(document_type, f"parser raised {e}", e)
            logger.error(str(error), exc_info=True)
            return self._failure(document_type, error, raw_text=raw_text)

        if not processor.is_usable(data):
            error = DocumentProcessingError.parse_failed(document_type, "no expected fields in model output")
            return self._failure(document_type, error, data=data, raw_text=raw_text)

        validation = await processor.validate(data, context)
        if validation.valid:
            data = await self._enrich(processor, data, context, validation)

        display_text = self._format(processor, data)
        confidence = extract_confidence(
            {"data": {**data, "validation": {"rollup": validation.rollup, **validation.field_confidences}}}
        )

        return DocumentProcessingResult(
            success=True,
            document_type=document_type,
            data=data,
            validation=validation,
            confidence=confidence,
            raw_text=raw_text,
            display_text=display_text,
            warning=confidence_warning(confidence),
        )

    async def _enrich(
        self,
        processor: DocumentProcessor,
        data: Dict[str, Any],
        context: ProcessingContext,
        validation: ValidationResult
    ) -> Dict[str, Any]:
        try:
            return await asyncio.wait_for(
                processor.enrich(data, context),
                timeout=self.enrichment_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Enrichment for {processor.document_type} timed out after {self.enrichment_timeout_seconds}s"
            )
            validation.warnings.append("Enrichment timed out; showing unenriched data")
        except Exception as e:
            error = DocumentProcessingError.enrichment_failed(processor.document_type, e)
            logger.warning(str(error))
            validation.warnings.append(f"Enrichment failed: {e}")
        return data

    @staticmethod
    def _format(processor: DocumentProcessor, data: Dict[str, Any]) -> Optional[str]:
        try:
            return processor.format(data)
        except Exception as e:
            logger.warning(f"Formatting {processor.document_type} data failed: {e}")
            return None

    @staticmethod
    def _failure(
        document_type: str,
        error: VisionProcessingError,
        data: Optional[Dict[str, Any]] = None,
        raw_text: str = ""
    ) -> DocumentProcessingResult:
        return DocumentProcessingResult.failure(
            document_type,
            error.context.message,
            error.error_code,
            data=data,
            raw_text=raw_text,
        )

    async def process_batch(self, documents: Sequence[BatchDocument]) -> BatchResult:
        """
        Process documents concurrently and independently.

        One item's failure never affects another. Results follow input order.

        Args:
            documents: Batch items

        Returns:
            BatchResult with per-item results and statistics over successes

        Raises:
            ValueError: If the batch exceeds ``max_batch_size``
        """
        if self.max_batch_size is not None and len(documents) > self.max_batch_size:
            raise ValueError(f"Batch of {len(documents)} exceeds limit of {self.max_batch_size}")

        logger.info(f"Processing batch of {len(documents)} documents")
        results: List[DocumentProcessingResult] = list(
            await asyncio.gather(*(self._process_item(index, doc) for index, doc in enumerate(documents)))
        )

        successes = [result for result in results if result.success]
        statistics = BatchStatistics(
            total_processing_time=sum(result.processing_time_ms for result in results),
        )
        if successes:
            statistics.average_confidence = sum(r.confidence for r in successes) / len(successes)
            statistics.average_processing_time = (
                sum(r.processing_time_ms for r in successes) / len(successes)
            )

        batch = BatchResult(
            total=len(results),
            successful=len(successes),
            failed=len(results) - len(successes),
            results=results,
            statistics=statistics,
        )
        logger.info(f"Batch complete: {batch.successful}/{batch.total} successful")
        return batch

    async def _process_item(self, index: int, document: BatchDocument) -> DocumentProcessingResult:
        @with_context(batch_index=index, document_name=document.name)
        async def run() -> DocumentProcessingResult:
            return await self.process_document(document.image_bytes, document.document_type, document.context)

        start_time = time.perf_counter()
        try:
            return await run()
        except Exception as e:
            logger.error(f"Unexpected error processing batch item {index}: {e}", exc_info=True)
            result = DocumentProcessingResult.failure(
                document.document_type,
                f"Unexpected error: {e}",
                ErrorType.UNKNOWN_ERROR.value,
                processing_time_ms=(time.perf_counter() - start_time) * 1000,
            )
            self.metrics.record_request(
                document.document_type,
                result.processing_time_ms,
                False,
                error_code=result.error_code,
            )
            return result


def build_pipeline(config: Config, metrics: Optional[VisionMetricsCollector] = None) -> VisionPipeline:
    """
    Wire the default registry, Bedrock client and metrics collector from configuration.

    Args:
        config: Loaded Config
        metrics: Existing collector to share (a new one is created otherwise)

    Returns:
        Ready VisionPipeline
    """
    vin_decoder = None
    if config.vin_decoder.enabled:
        vin_decoder = VinDecoder(
            base_url=config.vin_decoder.base_url,
            timeout=config.vin_decoder.timeout_seconds,
        )

    client = BedrockClient(
        region=config.aws_region,
        model_id=config.bedrock.model_id,
        timeout=config.vision.timeout_seconds,
    )

    if metrics is None:
        metrics = VisionMetricsCollector(
            max_stored_times=config.metrics.max_stored_times,
            log_every=config.metrics.log_every,
        )

    return VisionPipeline(
        registry=build_default_registry(vin_decoder=vin_decoder),
        vision_client=client,
        metrics=metrics,
        timeout_seconds=config.vision.timeout_seconds,
        enrichment_timeout_seconds=config.vision.enrichment_timeout_seconds,
        max_tokens=config.bedrock.max_tokens,
        temperature=config.bedrock.temperature,
        max_batch_size=config.vision.max_batch_size,
    )
