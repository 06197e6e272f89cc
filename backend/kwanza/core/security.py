"""
Módulo de integridade - assinatura (hash) dos documentos certificados.
Cada documento certificado encadeia o hash do anterior da mesma série/tipo.
"""
from datetime import date
from typing import Optional
import hashlib


def generate_integrity_hash(data: str) -> str:
    """
    Gera a assinatura de integridade SHA-256 de um conteúdo.
    """
    return hashlib.sha256(data.encode()).hexdigest()


def generate_document_hash(
    document_type: str,
    number: str,
    issue_date: date,
    total: float,
    previous_hash: Optional[str] = None
) -> str:
    """
    Hash de certificação de um documento fiscal.
    Conteúdo: data;número;tipo;total;hash anterior
    """
    content = ";".join([
        issue_date.isoformat(),
        number,
        document_type,
        f"{total:.2f}",
        previous_hash or "",
    ])
    return generate_integrity_hash(content)
