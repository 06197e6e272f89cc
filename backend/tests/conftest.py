"""
Configuração partilhada dos testes.
A base de dados de teste é SQLite em memória (definida antes de importar a aplicação).
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient

from kwanza.db.database import Base, engine
from kwanza.main import app


@pytest.fixture
def client():
    """Cliente HTTP com as tabelas criadas de novo para cada teste."""
    Base.metadata.create_all(bind=engine)
    with TestClient(app) as test_client:
        yield test_client
    Base.metadata.drop_all(bind=engine)
