"""
LoRaWAN Sensor Telemetry Ingestion

Receives ChirpStack webhook events over HTTP, queues them, and persists
normalized farm sensor observations and device metadata idempotently.
"""

__version__ = "1.0.0"
