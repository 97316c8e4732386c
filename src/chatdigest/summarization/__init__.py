"""Summarization pipeline: segment batching, summaries and daily digests."""

from .batcher import MessageBatcher
from .events import MessageEvent, SummarizeRequest
from .recap import RecapAggregator
from .segments import OpenSegment, SegmentStore
from .summarizer import LLMProtocol, OracleError, Summarizer
from .summary_worker import SummaryWorker
from .tokens import CHARS_PER_TOKEN, estimate_segment_tokens, estimate_tokens

__all__ = [
    "MessageBatcher",
    "MessageEvent",
    "SummarizeRequest",
    "RecapAggregator",
    "OpenSegment",
    "SegmentStore",
    "LLMProtocol",
    "OracleError",
    "Summarizer",
    "SummaryWorker",
    "CHARS_PER_TOKEN",
    "estimate_segment_tokens",
    "estimate_tokens",
]
