from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from flowengine import models
from flowengine.app import app
from flowengine.routes.deps import get_dispatcher, get_session_factory


@pytest.fixture
def dispatched():
    return []


@pytest.fixture
def client(session_factory, dispatched):
    def _dispatch(event, background_tasks=None):
        dispatched.append(event)
        return 'recorded'

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_dispatcher] = lambda: _dispatch
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_manual_execute_dispatches_trigger_event(client, save_workflow, dispatched):
    wf = save_workflow([{'id': 'start', 'type': 'MANUAL_TRIGGER'}])
    r = client.post(f'/api/workflows/{wf}/execute', json={'initialData': {'name': 'Ada'}})
    assert r.status_code == 202
    body = r.json()
    assert body['workflowId'] == wf
    assert body['dispatch'] == 'recorded'
    assert len(dispatched) == 1
    event = dispatched[0]
    assert event.trigger_event_id == body['triggerEventId']
    assert event.initial_context == {'name': 'Ada'}


def test_manual_execute_without_body(client, save_workflow, dispatched):
    wf = save_workflow([{'id': 'start', 'type': 'MANUAL_TRIGGER'}])
    r = client.post(f'/api/workflows/{wf}/execute')
    assert r.status_code == 202
    assert dispatched[0].initial_context == {}


def test_execute_unknown_workflow_returns_404(client, dispatched):
    r = client.post('/api/workflows/nope/execute', json={})
    assert r.status_code == 404
    assert dispatched == []


def test_google_form_webhook(client, save_workflow, dispatched):
    wf = save_workflow([{'id': 'form', 'type': 'GOOGLE_FORM_TRIGGER'}])
    payload = {'formId': 'f1', 'responseId': 'resp-9', 'responses': {'Email': 'a@example.com'}}
    r = client.post(f'/api/webhooks/google-form?workflowId={wf}', json=payload)
    assert r.status_code == 202
    event = dispatched[0]
    assert event.initial_context == {'googleForm': payload}

    # a redelivered submission maps to the same run
    client.post(f'/api/webhooks/google-form?workflowId={wf}', json=payload)
    assert dispatched[1].trigger_event_id == event.trigger_event_id


def test_google_form_webhook_requires_workflow_id(client):
    r = client.post('/api/webhooks/google-form', json={'responseId': 'x'})
    assert r.status_code == 400


def _seed_executions(session_factory, count):
    db = session_factory()
    try:
        for i in range(count):
            db.add(models.Execution(
                id=f'exec-{i}',
                workflow_id='wf-1',
                trigger_event_id=f'evt-{i}',
                status='SUCCESS',
                started_at=datetime(2024, 5, 1) + timedelta(seconds=i),
                output={'i': i},
                attempts=1,
            ))
        db.commit()
    finally:
        db.close()


def test_list_executions_paginates_newest_first(client, session_factory):
    _seed_executions(session_factory, 7)
    r = client.get('/api/executions')
    assert r.status_code == 200
    body = r.json()
    assert [it['id'] for it in body['items']] == ['exec-6', 'exec-5', 'exec-4', 'exec-3', 'exec-2']
    assert body['page'] == 1
    assert body['pageSize'] == 5
    assert body['totalCount'] == 7
    assert body['totalPages'] == 2
    assert body['hasNextPage'] is True
    assert body['hasPreviousPage'] is False

    r = client.get('/api/executions', params={'page': 2, 'pageSize': 5})
    body = r.json()
    assert [it['id'] for it in body['items']] == ['exec-1', 'exec-0']
    assert body['hasNextPage'] is False
    assert body['hasPreviousPage'] is True


@pytest.mark.parametrize('page_size', [0, 101])
def test_list_executions_rejects_out_of_range_page_size(client, page_size):
    r = client.get('/api/executions', params={'pageSize': page_size})
    assert r.status_code == 422


def test_get_execution(client, session_factory):
    _seed_executions(session_factory, 1)
    r = client.get('/api/executions/exec-0')
    assert r.status_code == 200
    body = r.json()
    assert body['status'] == 'SUCCESS'
    assert body['output'] == {'i': 0}
    assert client.get('/api/executions/missing').status_code == 404


def test_node_type_schema(client):
    body = client.get('/api/node-types/HTTP_REQUEST/schema').json()
    assert 'variableName' in body['properties']
    assert 'endpoint' in body['properties']
    assert client.get('/api/node-types/UNKNOWN/schema').json() == {'type': 'object'}


def test_health(client):
    assert client.get('/health').json() == {'status': 'ok'}
