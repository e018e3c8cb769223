from typing import Optional


class RemoteStoreError(Exception):
    """Errore generico verso il Remote Store. `reason` è il messaggio mostrabile all'utente."""

    def __init__(self, reason: str, *, status: Optional[int] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status = status


class AuthError(RemoteStoreError):
    """Credenziali errate o token non più valido (401/403)."""


class NetworkError(RemoteStoreError):
    """Errore di trasporto (timeout, connessione) o errore server (5xx / 429). Nessun retry automatico."""


class RequestRejected(RemoteStoreError):
    """Richiesta rifiutata dal server (4xx non di autenticazione)."""


class MalformedPayloadError(RemoteStoreError):
    """Risposta con forma inattesa, rifiutata al confine prima di entrare nel dominio."""
