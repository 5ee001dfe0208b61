from secretref.infra.secrets.dict_client import DictSecretStoreClient
from secretref.infra.secrets.file_vault_client import FileVaultSecretStore, FileVaultSecretStoreClient
from secretref.infra.secrets.secrets_manager_client import SecretsManagerClient

__all__ = [
    "DictSecretStoreClient",
    "FileVaultSecretStore",
    "FileVaultSecretStoreClient",
    "SecretsManagerClient",
]
