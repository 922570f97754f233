import os
import uuid
import pytest
import pika

import amqpio
from .fake_pika import FakeBroker


@pytest.fixture(scope="session")
def host():
    return os.environ.get("MW_HOST", "localhost")


@pytest.fixture
def broker(monkeypatch):
    """Replace pika.BlockingConnection with an in-memory broker"""
    fake = FakeBroker()
    monkeypatch.setattr(pika, "BlockingConnection", fake.connect)
    return fake


@pytest.fixture(autouse=True)
def clean_instance():
    amqpio.reset_instance()
    yield
    amqpio.reset_instance()


@pytest.fixture
def make_amqp(broker):
    created = []

    def _make(instance_name="svc-A", credentials=None):
        amqp = amqpio.AmqpIo(instance_name, credentials)
        created.append(amqp)
        return amqp

    yield _make
    for amqp in created:
        amqp.disconnect()


# --------- Utilidades comunes para los tests ----------


def unique_name(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}"
