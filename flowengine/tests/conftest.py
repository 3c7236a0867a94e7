import pytest
from sqlalchemy.orm import sessionmaker

from flowengine.credentials import SqlCredentialSource
from flowengine.database import init_db, make_engine
from flowengine.graph import build_graph
from flowengine.records import ExecutionRecordManager
from flowengine.runner import RetryPolicy, WorkflowRunner
from flowengine.status import InMemoryStatusPublisher
from flowengine.steps import InMemoryStepLedger
from flowengine.workflows import SqlGraphSource

_FLAG_VARS = (
    'LIVE_LLM',
    'ENABLE_LIVE_LLM',
    'ENABLE_GEMINI',
    'ENABLE_OPENAI',
    'ENABLE_ANTHROPIC',
    'CELERY_BROKER_URL',
    'BROKER_URL',
    'SECRETS_KEY',
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # mock LLM mode, no broker and a fixed encryption key for every test
    for var in _FLAG_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv('SECRET_KEY', 'test-secret-key')


@pytest.fixture
def session_factory():
    engine = make_engine('sqlite://')
    init_db(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def publisher():
    return InMemoryStatusPublisher()


@pytest.fixture
def ledger():
    return InMemoryStepLedger()


@pytest.fixture
def graph_source(session_factory):
    return SqlGraphSource(session_factory)


@pytest.fixture
def records(session_factory):
    return ExecutionRecordManager(session_factory)


@pytest.fixture
def credentials(session_factory):
    return SqlCredentialSource(session_factory)


@pytest.fixture
def save_workflow(graph_source):
    """Store a workflow built from node/connection dicts and return its id."""
    def _save(nodes, connections=(), name='wf'):
        return graph_source.create_workflow(name, build_graph(nodes, connections))
    return _save


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_runner(graph_source, records, ledger, publisher, credentials, sleeps):
    def _make(max_retries=0, backoff=0.5):
        async def _sleep(delay):
            sleeps.append(delay)

        return WorkflowRunner(
            graph_source=graph_source,
            records=records,
            ledger=ledger,
            publisher=publisher,
            credentials=credentials,
            retry_policy=RetryPolicy(max_retries=max_retries, backoff=backoff),
            sleep=_sleep,
        )
    return _make
