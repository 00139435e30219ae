"""
NoteCraft Backend: Google Gemini Extraction Service
=====================================================

What:  Concrete TextExtractionService backed by the Gemini API.
Why:   Gemini reads PDFs, office documents and images natively, so a single
       provider covers every binary-like type the upload primitive accepts.
How:   Uploads the stored file through the Gemini Files API, asks the model
       for the document's text, and wraps the call with retry and a
       circuit breaker.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transient failures
    2. Circuit breaker so a Gemini outage fails extractions instantly
       (the ingestion pipeline then falls back to upload-only)
    3. Per-request timeout from settings.extraction_timeout
"""

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Optional

import google.generativeai as genai
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from notecraft.config import settings
from notecraft.exceptions import CircuitBreakerOpenError, ExtractionError
from notecraft.services.extraction_base import TextExtractionService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker guarding the extraction provider.

    State Machine:
        CLOSED     failures are counted; at failure_threshold → OPEN
        OPEN       every call raises CircuitBreakerOpenError until
                   recovery_timeout has elapsed → HALF_OPEN
        HALF_OPEN  one call goes through; success → CLOSED, failure → OPEN

    Not thread-safe. uvicorn async workers share one process and one loop,
    so plain counters are enough.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns True if a call may proceed.

        Raises:
            CircuitBreakerOpenError if OPEN and the recovery timeout has not elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info("Circuit breaker transitioning to HALF_OPEN after %.1fs", elapsed)
                self.state = self.HALF_OPEN
                return True
            raise CircuitBreakerOpenError(recovery_time=int(self.recovery_timeout - elapsed))

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Gemini Service
# ══════════════════════════════════════════════════════════════════════════

class GeminiService(TextExtractionService):
    """
    Gemini implementation of document text extraction.

    Error Handling Chain:
        API call fails → tenacity retries (retry_max_attempts, with backoff)
        → last attempt fails → circuit breaker records a failure
        → ExtractionError raised to the caller
        → threshold reached → later calls raise CircuitBreakerOpenError at once
    """

    EXTRACT_PROMPT = """You are a document transcription system. Read the attached file
and return its textual content.

Instructions:
1. Preserve headings, paragraphs, line breaks and list structure
2. Render tables as simple lines with cells separated by " | "
3. For images, transcribe any visible text, printed or handwritten
4. Return ONLY the document text, without commentary or descriptions
5. If the document contains no text, return an empty response"""

    def __init__(self):
        if settings.gemini_api_key and settings.gemini_api_key != "your_gemini_api_key_here":
            genai.configure(api_key=settings.gemini_api_key)

        self.model = genai.GenerativeModel(settings.gemini_model)
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "GeminiService initialized with model=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            settings.gemini_model,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def extract_text(self, file_path: str, content_type: str) -> str:
        """
        Extract the text of a stored document.

        Flow:
            1. Check circuit breaker → may raise CircuitBreakerOpenError
            2. Upload to Gemini and generate, with retry
            3. Record success/failure in the circuit breaker

        Raises:
            CircuitBreakerOpenError: circuit is open
            ExtractionError: Gemini failed after all retry attempts
        """
        request_id = str(uuid.uuid4())[:8]

        self.circuit_breaker.can_execute()

        logger.info(
            "[%s] Starting Gemini extraction for %s (%s)",
            request_id,
            Path(file_path).name,
            content_type,
        )

        try:
            result = await self._call_gemini_with_retry(file_path, content_type, request_id)
        except Exception as e:
            # reraise=True on the retry decorator: this is the last attempt's error
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Gemini extraction failed after %d attempt(s): %s",
                request_id,
                settings.retry_max_attempts,
                str(e),
            )
            raise ExtractionError(
                context={
                    "request_id": request_id,
                    "attempts": settings.retry_max_attempts,
                    "error_type": type(e).__name__,
                },
            ) from e

        self.circuit_breaker.record_success()
        return result

    @retry(
        retry=retry_if_exception_type(Exception),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call_gemini_with_retry(self, file_path: str, content_type: str, request_id: str) -> str:
        """
        The retried unit: upload plus generate.

        Kept apart from extract_text so the circuit breaker check is not retried.
        """
        start_time = time.time()

        try:
            # The SDK upload is blocking
            uploaded = await asyncio.to_thread(
                genai.upload_file, path=file_path, mime_type=content_type
            )
            response = await self.model.generate_content_async(
                [self.EXTRACT_PROMPT, uploaded],
                request_options={"timeout": settings.extraction_timeout},
            )
        except Exception as e:
            logger.warning(
                "[%s] Gemini API call failed after %.0fms: %s",
                request_id,
                (time.time() - start_time) * 1000,
                str(e),
            )
            raise

        extracted_text = response.text.strip() if response.text else ""
        logger.info(
            "[%s] Gemini extraction completed in %.0fms, extracted %d chars",
            request_id,
            (time.time() - start_time) * 1000,
            len(extracted_text),
        )
        return extracted_text

    async def health_check(self) -> bool:
        """Lists models, which verifies key and connectivity without spending tokens."""
        try:
            models = await asyncio.to_thread(lambda: [m.name for m in genai.list_models()])
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False

        target = f"models/{settings.gemini_model}"
        if target not in models:
            logger.warning("Configured model %s not found in available models", target)
        return True


# ── Singleton Instance ────────────────────────────────────────────────────
# Holds the circuit breaker state shared by every request
gemini_service = GeminiService()
