"""
Database utilities for Partner Sync
Provides configuration loading, connection pooling and schema helpers
"""

import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List
from contextlib import contextmanager
import psycopg2
from psycopg2 import errors as pg_errors, pool
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/db_config.yml"

# Environment variables that override the YAML values
ENV_OVERRIDES = {
    'DB_HOST': 'host',
    'DB_PORT': 'port',
    'DB_NAME': 'database',
    'DB_USER': 'user',
    'DB_PASSWORD': 'password',
}


def resolve_config_path(config_path: Optional[str] = None) -> str:
    """Explicit path, then DB_CONFIG_PATH, then the default location"""
    return config_path or os.environ.get('DB_CONFIG_PATH', DEFAULT_CONFIG_PATH)


class DatabaseConfig:
    """Database configuration loader"""

    def __init__(self, config_path: str):
        self.config_path = Path(config_path)
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load database configuration from YAML, then apply env overrides"""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r') as f:
            config = yaml.safe_load(f) or {}

        database = dict(config.get('database') or {})
        for env_name, key in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                database[key] = value
        return database

    @property
    def connect_timeout(self) -> Optional[int]:
        value = self.config.get('connect_timeout')
        return int(value) if value is not None else None

    @property
    def statement_timeout_ms(self) -> Optional[int]:
        value = self.config.get('statement_timeout_ms')
        return int(value) if value is not None else None

    def get_psycopg2_params(self) -> Dict[str, Any]:
        """Get parameters for psycopg2 connection"""
        params = {
            'host': self.config['host'],
            'port': self.config['port'],
            'database': self.config['database'],
            'user': self.config['user'],
            'password': self.config.get('password', ''),
        }
        if self.connect_timeout is not None:
            params['connect_timeout'] = self.connect_timeout
        if self.statement_timeout_ms is not None:
            # Every statement on a pooled connection carries this timeout
            params['options'] = f"-c statement_timeout={self.statement_timeout_ms}"
        return params


class DatabaseManager:
    """
    Manages the psycopg2 connection pool used by the repositories
    """

    def __init__(self, config_path: Optional[str] = None, minconn: int = 1, maxconn: int = 5):
        self.config = DatabaseConfig(resolve_config_path(config_path))
        self.minconn = minconn
        self.maxconn = maxconn
        self._connection_pool: Optional[pool.SimpleConnectionPool] = None

    def get_connection_pool(self) -> pool.SimpleConnectionPool:
        """Get psycopg2 connection pool (lazy initialization)"""
        if self._connection_pool is None:
            params = self.config.get_psycopg2_params()
            self._connection_pool = pool.SimpleConnectionPool(
                minconn=self.minconn,
                maxconn=self.maxconn,
                **params
            )
            logger.info("psycopg2 connection pool initialized")
        return self._connection_pool

    @contextmanager
    def get_connection(self):
        """Context manager for a pooled connection; commits on success"""
        conn_pool = self.get_connection_pool()
        conn = conn_pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            logger.error(f"Database error: {e}")
            raise
        finally:
            conn_pool.putconn(conn)

    @contextmanager
    def get_cursor(self, cursor_factory=None):
        """Context manager for database cursor"""
        with self.get_connection() as conn:
            cursor = conn.cursor(cursor_factory=cursor_factory)
            try:
                yield cursor
            finally:
                cursor.close()

    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[tuple]:
        """Execute SELECT query and return results"""
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            return cursor.fetchall()

    def table_exists(self, table_name: str) -> bool:
        """Check if table exists"""
        query = """
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_name = %s
            );
        """
        result = self.execute_query(query, (table_name,))
        return result[0][0] if result else False

    def close(self):
        """Close all connections"""
        if self._connection_pool:
            self._connection_pool.closeall()
            self._connection_pool = None
            logger.info("Connection pool closed")


def create_database_if_not_exists(config_path: str) -> None:
    """
    Create the configured database if it doesn't exist
    Connects to the 'postgres' maintenance database to issue CREATE DATABASE
    """
    config = DatabaseConfig(config_path)
    params = config.get_psycopg2_params()
    db_name = params['database']
    params['database'] = 'postgres'

    conn = psycopg2.connect(**params)
    try:
        conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
        with conn.cursor() as cursor:
            cursor.execute("SELECT 1 FROM pg_database WHERE datname = %s;", (db_name,))
            if cursor.fetchone():
                logger.info(f"Database '{db_name}' already exists")
            else:
                cursor.execute(f'CREATE DATABASE "{db_name}";')
                logger.info(f"Database '{db_name}' created successfully")
    except Exception as e:
        logger.error(f"Error creating database: {e}")
        raise
    finally:
        conn.close()


def apply_schema(config_path: str, schema_file: str) -> None:
    """
    Apply database schema from SQL file

    Args:
        config_path: Path to database config YAML
        schema_file: Path to SQL schema file
    """
    schema_path = Path(schema_file)
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema file not found: {schema_file}")

    with open(schema_path, 'r', encoding='utf-8') as f:
        schema_sql = f.read()

    params = DatabaseConfig(config_path).get_psycopg2_params()
    conn = psycopg2.connect(**params)
    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)

    try:
        with conn.cursor() as cur:
            cur.execute(schema_sql)
        logger.info(f"Schema applied from {schema_file}")
    except pg_errors.DuplicateObject as e:
        # Indexes or constraints already exist on re-runs
        logger.warning(f"Some schema objects already exist (this is normal): {e}")
    except Exception as e:
        logger.error(f"Error applying schema: {e}")
        raise
    finally:
        conn.close()
