"""
Configuration classes for the reconciliation service.
"""
import os
from dataclasses import dataclass

CREATE_POLICIES = ('reject', 'upsert')


@dataclass
class SyncConfig:
    """Main configuration for the sync service."""
    database_path: str
    api_url: str = 'http://localhost:8002'
    api_host: str = '0.0.0.0'
    api_port: int = 8002
    create_policy: str = 'reject'
    bcrypt_rounds: int = 12
    session_key_bytes: int = 32
    log_level: str = 'INFO'

    def __post_init__(self):
        if self.create_policy not in CREATE_POLICIES:
            raise ValueError(
                f"Invalid create policy: {self.create_policy} "
                f"(expected one of {', '.join(CREATE_POLICIES)})"
            )

    @classmethod
    def from_env(cls) -> 'SyncConfig':
        """Create SyncConfig from environment variables."""
        return cls(
            database_path=os.getenv('DATABASE_PATH', 'data/boxsync.db'),
            api_url=os.getenv('BOXSYNC_API_URL', 'http://localhost:8002'),
            api_host=os.getenv('BOXSYNC_API_HOST', '0.0.0.0'),
            api_port=int(os.getenv('BOXSYNC_API_PORT', '8002')),
            create_policy=os.getenv('CREATE_POLICY', 'reject').lower(),
            bcrypt_rounds=int(os.getenv('BCRYPT_ROUNDS', '12')),
            session_key_bytes=int(os.getenv('SESSION_KEY_BYTES', '32')),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper()
        )
