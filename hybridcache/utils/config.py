"""
Configuration manager untuk hybridcache.
File ini membaca environment variables (dan file .env jika ada) dan
menyediakan konfigurasi default untuk cache client dan transport.
"""

import os
from dataclasses import dataclass, field, replace
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables dari .env file
load_dotenv()


class Config:
    """Class untuk manage semua konfigurasi sistem"""

    # Memcached cluster
    @staticmethod
    def get_servers() -> List[str]:
        """
        Parse server list dari environment variable.
        Format: "host1:port1,host2:port2"
        Returns: List of server addresses
        """
        servers_str = os.getenv('MEMCACHE_SERVERS', 'localhost:11211')
        if not servers_str:
            return []
        return [server.strip() for server in servers_str.split(',') if server.strip()]

    # Cache defaults (dalam seconds)
    DEFAULT_TTL: int = int(os.getenv('MEMCACHE_DEFAULT_TTL', 604800))

    # Transport failure handling
    SERVER_FAILURE_LIMIT: int = int(os.getenv('MEMCACHE_FAILURE_LIMIT', 2))
    RETRY_TIMEOUT: int = int(os.getenv('MEMCACHE_RETRY_TIMEOUT', 30))
    CONNECT_TIMEOUT: float = float(os.getenv('MEMCACHE_CONNECT_TIMEOUT', 2.0))
    TIMEOUT: float = float(os.getenv('MEMCACHE_TIMEOUT', 2.0))

    # Lock Configuration (dalam seconds)
    LOCK_TIMEOUT: int = int(os.getenv('LOCK_TIMEOUT', 5))
    LOCK_WAIT: float = float(os.getenv('LOCK_WAIT', 1))

    # Logging
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE: str = os.getenv('LOG_FILE', '')

    @classmethod
    def display(cls):
        """Print semua konfigurasi untuk debugging"""
        print("=== Configuration ===")
        print(f"Servers: {cls.get_servers()}")
        print(f"Default TTL: {cls.DEFAULT_TTL}s")
        print(f"Failure limit: {cls.SERVER_FAILURE_LIMIT}, retry timeout: {cls.RETRY_TIMEOUT}s")
        print(f"Lock timeout: {cls.LOCK_TIMEOUT}s, lock wait: {cls.LOCK_WAIT}s")
        print("=" * 30)


@dataclass(frozen=True)
class CacheConfig:
    """
    Konfigurasi per client instance.

    prefix_key dan prefix_delimiter default kosong: namespacing dilakukan
    oleh client sendiri, bukan oleh transport.
    """
    servers: List[str] = field(default_factory=list)
    prefix_key: str = ''
    prefix_delimiter: str = ''
    support_cas: bool = True

    hash_algorithm: str = 'murmur3'
    distribution_strategy: str = 'rendezvous'
    ketama_weighted: bool = False
    server_failure_limit: int = 2
    retry_timeout: int = 30
    connect_timeout: Optional[float] = None
    timeout: Optional[float] = None

    default_ttl: int = 604800

    @classmethod
    def from_env(cls) -> 'CacheConfig':
        """Build config dari Config (environment variables)"""
        return cls(
            servers=Config.get_servers(),
            server_failure_limit=Config.SERVER_FAILURE_LIMIT,
            retry_timeout=Config.RETRY_TIMEOUT,
            connect_timeout=Config.CONNECT_TIMEOUT,
            timeout=Config.TIMEOUT,
            default_ttl=Config.DEFAULT_TTL,
        )

    def merge(self, **options) -> 'CacheConfig':
        """
        Return copy dengan options yang di-override.
        Options dengan value None diabaikan; unknown option raise TypeError.
        """
        options = {k: v for k, v in options.items() if v is not None}
        if 'servers' in options:
            options['servers'] = list(options['servers'])
        return replace(self, **options)


# Test configuration saat file dijalankan langsung
if __name__ == "__main__":
    Config.display()
