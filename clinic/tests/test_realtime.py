"""
WebSocket tests for ``ws/appointments/``.

They drive the full ASGI application through channels' WebsocketCommunicator
and need real commits, since the consumer reads users from another thread.
"""
import datetime

import pytest
import pytest_asyncio
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from rest_framework.authtoken.models import Token

from clinic.models import Appointment
from clinic.services.appointments import broadcast
from clinic.services.notifications import notify
from clinic.tests.factories import make_doctor, make_patient, next_weekday
from telehealth.asgi import application

pytestmark = pytest.mark.django_db(transaction=True)


@pytest_asyncio.fixture
async def channel_layer():
    layer = get_channel_layer()
    yield layer
    await layer.flush()


@database_sync_to_async
def _patient_with_token():
    patient = make_patient()
    return patient, Token.objects.create(user=patient).key


@database_sync_to_async
def _appointment_for(patient):
    doctor = make_doctor()
    return Appointment.objects.create(
        patient=patient, doctor=doctor.user, date=next_weekday(0), start_time=datetime.time(9, 0),
        end_time=datetime.time(9, 30), type=Appointment.TYPE_VIRTUAL, reason='Checkup',
    )


async def _connect(token):
    communicator = WebsocketCommunicator(application, f'/ws/appointments/?token={token}')
    connected, _ = await communicator.connect()
    assert connected
    assert await communicator.receive_json_from() == {'type': 'welcome', 'message': 'connected'}
    return communicator


@pytest.mark.asyncio
async def test_anonymous_socket_is_closed_with_4001(channel_layer):
    communicator = WebsocketCommunicator(application, '/ws/appointments/')
    connected, code = await communicator.connect()
    assert not connected
    assert code == 4001


@pytest.mark.asyncio
async def test_unknown_token_is_closed_with_4001(channel_layer):
    communicator = WebsocketCommunicator(application, '/ws/appointments/?token=nope')
    connected, code = await communicator.connect()
    assert not connected
    assert code == 4001


@pytest.mark.asyncio
async def test_token_socket_joins_user_group(channel_layer):
    patient, token = await _patient_with_token()
    communicator = await _connect(token)

    await channel_layer.group_send(f'user.{patient.id}', {'type': 'notification.created', 'notification': {'id': 1}})
    assert await communicator.receive_json_from() == {'type': 'notification.created', 'notification': {'id': 1}}
    await communicator.disconnect()


@pytest.mark.asyncio
async def test_appointment_updates_are_pushed(channel_layer):
    patient, token = await _patient_with_token()
    appt = await _appointment_for(patient)
    communicator = await _connect(token)

    await database_sync_to_async(broadcast)(appt)
    event = await communicator.receive_json_from()
    assert event['type'] == 'appointment.updated'
    assert event['appointment']['id'] == appt.id
    assert event['appointment']['status'] == 'pending'
    await communicator.disconnect()


@pytest.mark.asyncio
async def test_notifications_are_pushed(channel_layer):
    patient, token = await _patient_with_token()
    communicator = await _connect(token)

    await database_sync_to_async(notify)(patient, 'Reminder', 'Your appointment is tomorrow.')
    event = await communicator.receive_json_from()
    assert event['type'] == 'notification.created'
    assert event['notification']['title'] == 'Reminder'
    assert event['notification']['read'] is False
    await communicator.disconnect()
