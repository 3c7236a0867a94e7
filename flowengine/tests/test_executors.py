import asyncio

import pytest
import requests

from flowengine.errors import ConfigurationError, CredentialNotFoundError, TransientProviderError
from flowengine.executors import get_executor
from flowengine.status import InMemoryStatusPublisher
from flowengine.steps import InMemoryStepLedger, StepRuntime


class DummyResponse:
    def __init__(self, status_code=200, json_data=None, text='', content_type='application/json'):
        self.status_code = status_code
        self.reason = 'OK' if status_code < 400 else 'Error'
        self._json = json_data
        self.text = text
        self.headers = {'content-type': content_type}

    def json(self):
        if self._json is None:
            raise ValueError('no json')
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} Error', response=self)


class DummyCredentials:
    def __init__(self, secrets=None):
        self.secrets = secrets or {}
        self.resolved = []

    def resolve(self, credential_id):
        self.resolved.append(credential_id)
        if credential_id not in self.secrets:
            raise CredentialNotFoundError(f"Credential '{credential_id}' not found")
        return self.secrets[credential_id]


def _run(node_type, data, context=None, credentials=None, node_id='n1', ledger=None):
    publisher = InMemoryStatusPublisher()
    step = StepRuntime(ledger if ledger is not None else InMemoryStepLedger(), 'run-1')
    result = asyncio.run(get_executor(node_type)(data, node_id, context or {}, step, publisher, credentials=credentials))
    return result, publisher


def test_http_request_merges_response_under_variable_name(monkeypatch):
    sent = {}

    def fake_request(method, url, json=None, headers=None, timeout=None):
        sent.update(method=method, url=url, json=json)
        return DummyResponse(json_data={'id': 7})

    monkeypatch.setattr('flowengine.executors.http_request.requests.request', fake_request)
    data = {'variableName': 'todo', 'endpoint': 'https://api.example.com/todos/{{ seed.id }}'}
    result, publisher = _run('HTTP_REQUEST', data, context={'seed': {'id': 7}})

    assert sent == {'method': 'GET', 'url': 'https://api.example.com/todos/7', 'json': None}
    assert result['seed'] == {'id': 7}
    assert result['todo'] == {'httpResponse': {'status': 200, 'statusText': 'OK', 'data': {'id': 7}}}
    assert publisher.for_node('n1') == ['loading', 'success']
    assert publisher.events[0][0] == 'http-request-execution'


def test_http_request_missing_upstream_variable_renders_empty(monkeypatch):
    sent = {}

    def fake_request(method, url, json=None, headers=None, timeout=None):
        sent['url'] = url
        return DummyResponse(json_data={})

    monkeypatch.setattr('flowengine.executors.http_request.requests.request', fake_request)
    data = {'variableName': 'item', 'endpoint': 'https://api.example.com/items/{{ prior.httpResponse.data.id }}'}
    result, publisher = _run('HTTP_REQUEST', data)

    assert sent['url'] == 'https://api.example.com/items/'
    assert result['item']['httpResponse']['status'] == 200
    assert publisher.for_node('n1') == ['loading', 'success']


def test_http_request_posts_rendered_json_body(monkeypatch):
    sent = {}

    def fake_request(method, url, json=None, headers=None, timeout=None):
        sent.update(method=method, json=json, headers=headers)
        return DummyResponse(text='created', content_type='text/plain')

    monkeypatch.setattr('flowengine.executors.http_request.requests.request', fake_request)
    data = {
        'variableName': 'created',
        'endpoint': 'https://api.example.com/items',
        'method': 'POST',
        'body': '{"name": {{ item.name | json }}}',
        'headers': {'X-Trace': '{{ trace }}'},
    }
    result, _ = _run('HTTP_REQUEST', data, context={'item': {'name': 'lamp "x"'}, 'trace': 'abc'})
    assert sent['method'] == 'POST'
    assert sent['json'] == {'name': 'lamp "x"'}
    assert sent['headers'] == {'X-Trace': 'abc'}
    assert result['created']['httpResponse']['data'] == 'created'


def test_does_not_mutate_incoming_context(monkeypatch):
    monkeypatch.setattr('flowengine.executors.http_request.requests.request',
                        lambda *a, **kw: DummyResponse(json_data={}))
    context = {'a': 1}
    result, _ = _run('HTTP_REQUEST', {'variableName': 'r', 'endpoint': 'https://x.test'}, context=context)
    assert context == {'a': 1}
    assert result is not context


@pytest.mark.parametrize('data,message', [
    ({'endpoint': 'https://x.test'}, 'Variable name is missing'),
    ({'variableName': 'r'}, 'Endpoint is missing'),
    ({'variableName': 'r', 'endpoint': '   '}, 'Endpoint is missing'),
])
def test_http_request_missing_fields(data, message):
    publisher = InMemoryStatusPublisher()
    step = StepRuntime(InMemoryStepLedger(), 'run-1')
    with pytest.raises(ConfigurationError) as exc:
        asyncio.run(get_executor('HTTP_REQUEST')(data, 'n1', {}, step, publisher))
    assert message in str(exc.value)
    assert exc.value.node_id == 'n1'
    assert publisher.for_node('n1') == ['loading', 'error']


def test_http_request_invalid_json_body_is_configuration_error():
    data = {'variableName': 'r', 'endpoint': 'https://x.test', 'method': 'POST', 'body': '{not json'}
    with pytest.raises(ConfigurationError):
        _run('HTTP_REQUEST', data)


def test_http_request_failures_are_transient(monkeypatch):
    monkeypatch.setattr('flowengine.executors.http_request.requests.request',
                        lambda *a, **kw: DummyResponse(status_code=503, json_data={}))
    with pytest.raises(TransientProviderError) as exc:
        _run('HTTP_REQUEST', {'variableName': 'r', 'endpoint': 'https://x.test'})
    assert exc.value.retriable is True

    def refuse(*a, **kw):
        raise requests.ConnectionError('refused')

    monkeypatch.setattr('flowengine.executors.http_request.requests.request', refuse)
    with pytest.raises(TransientProviderError):
        _run('HTTP_REQUEST', {'variableName': 'r', 'endpoint': 'https://x.test'})


def test_ai_prompt_renders_upstream_variable():
    creds = DummyCredentials({'cred-1': 'sk-test-value'})
    data = {
        'variableName': 'summary',
        'credentialId': 'cred-1',
        'userPrompt': 'Summarize: {{ foo }}',
    }
    result, publisher = _run('GEMINI', data, context={'foo': 'the quarterly report'}, credentials=creds)
    assert result['summary']['text'] == (
        '[mock] GeminiAdapter would respond to prompt: Summarize: the quarterly report'
    )
    assert creds.resolved == ['cred-1']
    assert publisher.events[0][0] == 'gemini-execution'
    assert publisher.for_node('n1') == ['loading', 'success']


def test_ai_uses_default_system_prompt(monkeypatch):
    seen = {}

    def fake_generate(self, prompt, system=None):
        seen.update(prompt=prompt, system=system, model=self.model, key=self.api_key)
        return {'text': 'hi'}

    monkeypatch.setattr('flowengine.adapters.openai_adapter.OpenAIAdapter.generate', fake_generate)
    creds = DummyCredentials({'c': 'secret'})
    data = {'variableName': 'out', 'credentialId': 'c', 'userPrompt': 'hello', 'model': 'gpt-4o'}
    result, _ = _run('OPENAI', data, credentials=creds)
    assert result['out'] == {'text': 'hi'}
    assert seen == {'prompt': 'hello', 'system': 'You are a helpful assistant.', 'model': 'gpt-4o', 'key': 'secret'}


@pytest.mark.parametrize('node_type', ['GEMINI', 'OPENAI', 'ANTHROPIC'])
def test_ai_missing_user_prompt(node_type):
    data = {'variableName': 'out', 'credentialId': 'c'}
    with pytest.raises(ConfigurationError) as exc:
        _run(node_type, data, credentials=DummyCredentials({'c': 'x'}))
    assert 'User prompt is missing' in str(exc.value)


def test_ai_missing_credential_reference():
    with pytest.raises(ConfigurationError) as exc:
        _run('ANTHROPIC', {'variableName': 'out', 'userPrompt': 'hi'}, credentials=DummyCredentials())
    assert 'Credential is required' in str(exc.value)


def test_ai_unknown_credential_is_non_retriable():
    publisher_data = {'variableName': 'out', 'credentialId': 'missing', 'userPrompt': 'hi'}
    with pytest.raises(CredentialNotFoundError) as exc:
        _run('GEMINI', publisher_data, credentials=DummyCredentials())
    assert exc.value.retriable is False
    assert exc.value.node_id == 'n1'


def test_ai_result_is_replayed_on_retry(monkeypatch):
    calls = []

    def fake_generate(self, prompt, system=None):
        calls.append(prompt)
        return {'text': f'answer {len(calls)}'}

    monkeypatch.setattr('flowengine.adapters.anthropic_adapter.AnthropicAdapter.generate', fake_generate)
    ledger = InMemoryStepLedger()
    creds = DummyCredentials({'c': 'k'})
    data = {'variableName': 'out', 'credentialId': 'c', 'userPrompt': 'q'}
    first, _ = _run('ANTHROPIC', data, credentials=creds, ledger=ledger)
    second, _ = _run('ANTHROPIC', data, credentials=creds, ledger=ledger)
    assert first == second == {'out': {'text': 'answer 1'}}
    assert calls == ['q']


def test_trigger_nodes_pass_context_through():
    for node_type in ('INITIAL', 'MANUAL_TRIGGER', 'GOOGLE_FORM_TRIGGER'):
        result, publisher = _run(node_type, {}, context={'googleForm': {'answer': 'yes'}})
        assert result == {'googleForm': {'answer': 'yes'}}
        assert publisher.for_node('n1') == ['loading', 'success']
