"""
Monitoring Module - Unified logging and metrics tracking for AI operations.

This module provides observability for the assistant:
- LLM request/response logging
- Token usage and cost estimation
- Latency metrics
- Intent distribution
- Error tracking

Usage:
======
    from app.ai.monitoring import ai_monitor

    ai_monitor.track_response_from_ai_response(request_id, response)
    ai_monitor.track_intent(request_id, message, "CREATE_EVENT", confidence=0.9)

    stats = ai_monitor.get_stats()
"""

from app.ai.monitoring.monitor import AIMonitor, ai_monitor

__all__ = [
    "AIMonitor",
    "ai_monitor",
]
