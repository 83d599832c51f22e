"""
Test the rent schedule API endpoints through the Flask test client
"""
import logging
from datetime import date
from logging.handlers import RotatingFileHandler

from fleet_leasing import database
from fleet_leasing.app import setup_logging
from fleet_leasing.rent_schedule.core.processor import LOCK_NAME

ADMIN = {'X-Admin-Token': 'test-admin-token'}


def test_health(client):
    assert client.get('/health').get_json() == {'status': 'ok'}


def test_trigger_requires_admin_token(client, make_lease):
    make_lease(date(2024, 6, 1))

    no_token = client.post('/api/rent-schedules/process', json={'run_date': '2024-06-10'})
    wrong_token = client.post('/api/rent-schedules/process', json={'run_date': '2024-06-10'},
                              headers={'X-Admin-Token': 'nope'})

    assert no_token.status_code == 403
    assert wrong_token.status_code == 403


def test_trigger_runs_engine(client, make_lease):
    lease_id = make_lease(date(2024, 1, 17))

    response = client.post('/api/rent-schedules/process', json={'run_date': '2024-06-10'}, headers=ADMIN)

    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['agreements_processed'] == 1
    assert body['historical_schedules_created'] == 5
    assert body['schedules_created'] == 1
    assert body['late_fees_processed'] == 6
    assert body['errors'] == []
    assert len(database.get_payment_schedules(lease_id)) == 6


def test_trigger_accepts_camel_case_options(client, make_lease):
    target = make_lease(date(2024, 5, 1))
    other = make_lease(date(2024, 5, 1))

    response = client.post('/api/rent-schedules/process', headers=ADMIN, json={
        'agreementId': target,
        'processHistorical': True,
        'run_date': '2024-06-10',
    })

    assert response.status_code == 200
    assert response.get_json()['agreements_processed'] == 1
    assert len(database.get_late_fees(target)) == 1
    assert database.get_late_fees(other) == []


def test_trigger_rejects_bad_run_date(client):
    response = client.post('/api/rent-schedules/process', json={'run_date': 'tomorrow'}, headers=ADMIN)

    assert response.status_code == 400
    assert 'Invalid run_date' in response.get_json()['error']


def test_trigger_conflicts_with_running_engine(client, db_path):
    database.acquire_run_lock(LOCK_NAME, 'scheduler', 3600)

    response = client.post('/api/rent-schedules/process', json={'run_date': '2024-06-10'}, headers=ADMIN)

    assert response.status_code == 409
    assert response.get_json()['success'] is False


def test_trigger_unknown_agreement_fails(client, db_path):
    response = client.post('/api/rent-schedules/process', headers=ADMIN,
                           json={'agreement_id': 'missing', 'run_date': '2024-06-10'})

    assert response.status_code == 500
    body = response.get_json()
    assert body['success'] is False
    assert 'Agreement not found' in body['error']


def test_schedule_and_late_fee_reads(client, make_lease):
    lease_id = make_lease(date(2024, 5, 1))
    client.post('/api/rent-schedules/process', json={'run_date': '2024-06-10'}, headers=ADMIN)

    schedules = client.get(f'/api/agreements/{lease_id}/payment-schedules').get_json()
    late_fees = client.get(f'/api/agreements/{lease_id}/late-fees').get_json()

    assert schedules['success'] is True
    assert [s['due_date'] for s in schedules['schedules']] == ['2024-05-01', '2024-06-01']
    assert late_fees['success'] is True
    assert [(f['original_due_date'], f['days_overdue']) for f in late_fees['late_fees']] == [
        ('2024-05-01', 30),
        ('2024-06-01', 9),
    ]
    assert late_fees['late_fees'][0]['description'] == 'Auto-generated late payment record for May 2024'


def test_missing_payments_endpoint(client, make_lease):
    lease_id = make_lease(date(2024, 5, 1))

    response = client.get('/api/payments/missing?date=2024-06-10')

    body = response.get_json()
    assert response.status_code == 200
    assert [(a['id'], a['status_description']) for a in body['agreements']] == [
        (lease_id, 'Missing payment schedules'),
    ]


def test_setup_logging_replaces_its_earlier_handlers(tmp_path):
    setup_logging(tmp_path / 'first')
    setup_logging(tmp_path / 'second')

    installed = [h for h in logging.getLogger().handlers if getattr(h, '_fleet_leasing', False)]
    file_handlers = [h for h in installed if isinstance(h, RotatingFileHandler)]
    assert len(installed) == 2
    assert [h.baseFilename for h in file_handlers] == [str(tmp_path / 'second' / 'fleet_leasing.log')]
