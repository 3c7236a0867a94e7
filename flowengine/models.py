import enum
import secrets
import string
from datetime import datetime

from sqlalchemy import Column, Integer, String, ForeignKey, JSON, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from .database import Base

_ID_ALPHABET = string.ascii_letters + string.digits


def generate_id(length: int = 32) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


class NodeType(str, enum.Enum):
    INITIAL = "INITIAL"
    MANUAL_TRIGGER = "MANUAL_TRIGGER"
    GOOGLE_FORM_TRIGGER = "GOOGLE_FORM_TRIGGER"
    HTTP_REQUEST = "HTTP_REQUEST"
    GEMINI = "GEMINI"
    OPENAI = "OPENAI"
    ANTHROPIC = "ANTHROPIC"


class CredentialType(str, enum.Enum):
    GEMINI = "GEMINI"
    OPENAI = "OPENAI"
    ANTHROPIC = "ANTHROPIC"


class ExecutionStatus(str, enum.Enum):
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class Workflow(Base):
    __tablename__ = 'workflows'
    id = Column(String, primary_key=True, default=generate_id)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    nodes = relationship('Node', back_populates='workflow', cascade='all, delete-orphan')
    connections = relationship('Connection', back_populates='workflow', cascade='all, delete-orphan')


class Node(Base):
    __tablename__ = 'nodes'
    id = Column(String, primary_key=True, default=generate_id)
    workflow_id = Column(String, ForeignKey('workflows.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    # editor coordinates; never read by the engine
    position = Column(JSON)
    data = Column(JSON, default=dict)
    credential_id = Column(String, ForeignKey('credentials.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    workflow = relationship('Workflow', back_populates='nodes')


class Connection(Base):
    __tablename__ = 'connections'
    __table_args__ = (
        UniqueConstraint('workflow_id', 'from_node_id', 'to_node_id', 'from_output', 'to_input',
                         name='uq_connection_ports'),
    )
    id = Column(String, primary_key=True, default=generate_id)
    workflow_id = Column(String, ForeignKey('workflows.id', ondelete='CASCADE'), nullable=False, index=True)
    from_node_id = Column(String, ForeignKey('nodes.id', ondelete='CASCADE'), nullable=False)
    to_node_id = Column(String, ForeignKey('nodes.id', ondelete='CASCADE'), nullable=False)
    from_output = Column(String, nullable=False, default='main')
    to_input = Column(String, nullable=False, default='main')
    created_at = Column(DateTime, default=datetime.utcnow)
    workflow = relationship('Workflow', back_populates='connections')


class Credential(Base):
    __tablename__ = 'credentials'
    id = Column(String, primary_key=True, default=generate_id)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    # Fernet token; see flowengine.crypto
    value = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Execution(Base):
    __tablename__ = 'executions'
    id = Column(String, primary_key=True, default=generate_id)
    workflow_id = Column(String, ForeignKey('workflows.id', ondelete='CASCADE'), nullable=False, index=True)
    trigger_event_id = Column(String, nullable=False, unique=True)
    status = Column(String, nullable=False, default=ExecutionStatus.RUNNING.value)
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    output = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
    error_stack = Column(Text, nullable=True)
    # number of attempts made executing this run
    attempts = Column(Integer, default=0, nullable=False)


class StepResult(Base):
    __tablename__ = 'step_results'
    __table_args__ = (
        UniqueConstraint('run_key', 'step_name', name='uq_step_result'),
    )
    id = Column(Integer, primary_key=True)
    run_key = Column(String, nullable=False, index=True)
    step_name = Column(String, nullable=False)
    result = Column(JSON)
    created_at = Column(DateTime, default=datetime.utcnow)
