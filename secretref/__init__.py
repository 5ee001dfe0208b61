from secretref.domain.secret_resolver import SecretResolver

__all__ = ["SecretResolver"]
