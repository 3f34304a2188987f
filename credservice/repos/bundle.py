"""Repository bundle handed to the service layer.

Services take one ``Repos`` instead of five separate arguments.  With
DATABASE_URL unset the process shares a single in-memory bundle; with
it set, every request gets a fresh bundle bound to its own session.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from credservice.repos.credential_repo import CredentialRepo, InMemoryCredentialRepo
from credservice.repos.identity_repo import IdentityRepo, InMemoryIdentityRepo
from credservice.repos.pg_credential_repo import PgCredentialRepo
from credservice.repos.pg_identity_repo import PgIdentityRepo
from credservice.repos.pg_proof_repo import PgProofRepo
from credservice.repos.pg_template_repo import PgTemplateRepo
from credservice.repos.pg_verification_repo import PgVerificationRepo
from credservice.repos.proof_repo import InMemoryProofRepo, ProofRepo
from credservice.repos.template_repo import InMemoryTemplateRepo, TemplateRepo
from credservice.repos.verification_repo import (
    InMemoryVerificationRepo,
    VerificationRepo,
)


@dataclass(frozen=True, slots=True)
class Repos:
    identities: IdentityRepo
    credentials: CredentialRepo
    templates: TemplateRepo
    proofs: ProofRepo
    verifications: VerificationRepo


def in_memory_repos() -> Repos:
    return Repos(
        identities=InMemoryIdentityRepo(),
        credentials=InMemoryCredentialRepo(),
        templates=InMemoryTemplateRepo(),
        proofs=InMemoryProofRepo(),
        verifications=InMemoryVerificationRepo(),
    )


def pg_repos(session: AsyncSession) -> Repos:
    return Repos(
        identities=PgIdentityRepo(session),
        credentials=PgCredentialRepo(session),
        templates=PgTemplateRepo(session),
        proofs=PgProofRepo(session),
        verifications=PgVerificationRepo(session),
    )


_memory = in_memory_repos()


def memory_repos() -> Repos:
    """The process-wide in-memory bundle."""
    return _memory


def reset_memory_repos() -> Repos:
    """Swap in an empty in-memory bundle (used between tests)."""
    global _memory
    _memory = in_memory_repos()
    return _memory
