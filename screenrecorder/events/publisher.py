"""Session event publisher for pub/sub lifecycle notifications."""

import uuid
import logging
from typing import Any

from pubsub import pub

from ..models.events import SessionEvent

logger = logging.getLogger(__name__)


class SessionEventPublisher:
    """Publishes session lifecycle events using pubsub.pub.

    Events go to ``<topic_prefix>.<event_type>``, e.g. ``session.stopped``.
    Subscribers receive a single ``event`` keyword argument. An exception
    raised by a subscriber is logged and never reaches the publisher's caller.
    """

    def __init__(self, topic_prefix: str = "session"):
        """Initialize session event publisher.

        Args:
            topic_prefix: Root pub/sub topic for session events
        """
        self.topic_prefix = topic_prefix
        logger.info(f"SessionEventPublisher initialized with topic prefix: {topic_prefix}")

    def topic_for(self, event_type: str) -> str:
        return f"{self.topic_prefix}.{event_type}"

    def publish(self, event_type: str, session_id: str, **metadata: Any) -> SessionEvent:
        """Publish a session event.

        Args:
            event_type: Lifecycle step ("created", "started", ...)
            session_id: Session the event refers to
            **metadata: Extra event data

        Returns:
            The published event
        """
        event = SessionEvent(
            event_id=uuid.uuid4().hex,
            event_type=event_type,
            session_id=session_id,
            metadata=metadata,
        )
        try:
            pub.sendMessage(self.topic_for(event_type), event=event)
        except Exception as e:
            # registry operations never fail on a subscriber error
            logger.error(f"Subscriber failed handling {event_type} for {session_id}: {e}", exc_info=True)
            return event
        logger.debug(f"Published session event: {event_type} for {session_id}")
        return event
