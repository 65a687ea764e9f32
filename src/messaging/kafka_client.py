import json
import logging
import socket
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from confluent_kafka import Producer
from confluent_kafka.error import KafkaError

from config.settings import kafka_settings

logger = logging.getLogger(__name__)

# Global Kafka Producer instance
_producer_instance: Optional[Producer] = None


def _get_kafka_config() -> dict:
    """Builds the Kafka configuration dictionary."""
    config = {
        'bootstrap.servers': kafka_settings.bootstrap_servers,
        'client.id': socket.gethostname(),
        'retries': 5,
        'message.timeout.ms': 10000, # 10 seconds per message attempt
    }
    logger.info(f"Kafka Producer config: {config}")
    return config


def _delivery_report(err: Optional[KafkaError], msg):
    """Callback function for Kafka message delivery reports."""
    if err is not None:
        logger.error(f"Message delivery failed: {err}")
    else:
        logger.debug(
            f"Message delivered to {msg.topic()} [{msg.partition()}] @ offset {msg.offset()}"
        )


def get_producer() -> Optional[Producer]:
    """Initializes and returns the Kafka Producer instance, or None when Kafka is disabled or unavailable."""
    global _producer_instance
    if not kafka_settings.enabled:
        return None
    if _producer_instance is None:
        try:
            _producer_instance = Producer(_get_kafka_config())
            logger.info("Confluent Kafka Producer initialized.")
        except KafkaError as e:
            logger.error(f"Failed to initialize Confluent Kafka Producer (KafkaError): {e}")
            _producer_instance = None
        except Exception as e:
            logger.error(f"Failed to initialize Confluent Kafka Producer (Other Error): {e}")
            _producer_instance = None
    return _producer_instance


def send_event(topic: str, payload: dict, key: Optional[str] = None) -> bool:
    """
    Sends an event payload to the specified Kafka topic.

    Events are best effort: failures are logged and reported through the
    return value, never raised.
    """
    producer = get_producer()
    if producer is None:
        logger.warning(f"Kafka producer is not available. Event for topic '{topic}' not sent.")
        return False

    try:
        serialized_payload = json.dumps(payload).encode('utf-8')
        serialized_key = key.encode('utf-8') if key else None

        producer.produce(
            topic,
            value=serialized_payload,
            key=serialized_key,
            callback=_delivery_report
        )
        # Polling with 0 timeout serves already-queued callbacks without blocking
        producer.poll(0)
        return True
    except BufferError:
        logger.error(f"Kafka producer queue is full for topic '{topic}'. Flushing; event dropped.")
        producer.flush(5)
        return False
    except Exception as e:
        logger.error(f"Error producing event to Kafka topic '{topic}': {e}")
        return False


def emit_assessment_completed(
    assessment_id: str,
    user_id: str,
    dominant_state: Optional[str],
    state_scores: Dict[str, Any],
) -> bool:
    event = {
        "assessment_id": assessment_id,
        "user_id": user_id,
        "dominant_state": dominant_state,
        "results": state_scores,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    sent = send_event(kafka_settings.assessment_completed_topic, event, key=assessment_id)
    if sent:
        logger.info(f"Assessment completed event queued for assessment {assessment_id}")
    return sent


def flush_producer(timeout: float = 10.0) -> int:
    """Flushes the producer queue. Returns the number of messages still undelivered."""
    if _producer_instance is None:
        return 0
    remaining = _producer_instance.flush(timeout)
    if remaining > 0:
        logger.warning(f"Producer flush timed out, {remaining} messages still in queue.")
    else:
        logger.info("Producer flushed successfully.")
    return remaining
