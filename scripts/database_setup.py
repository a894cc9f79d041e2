"""
PostgreSQL schema setup for the Case Ledger.

Only needed with STORAGE_BACKEND=postgresql. Each collection (users, clients,
cases) is kept as one JSONB row of the ledger_collections table.

Usage:
    python scripts/database_setup.py [--reset|--clear-data]
"""

import os
import sys

import psycopg2
from psycopg2 import sql

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from case_ledger.config.settings import Config  # noqa: E402
from case_ledger.services.store import PostgresStore  # noqa: E402


class PostgreSQLSetup:
    def __init__(self, host="localhost", port=5432, database="case_ledger", user="postgres", password="postgres"):
        self.connection_params = {"host": host, "port": port, "database": database, "user": user, "password": password}

    def create_database_if_not_exists(self):
        """Create the database if it doesn't exist"""
        # Connect to default postgres database first
        temp_params = self.connection_params.copy()
        temp_params["database"] = "postgres"

        try:
            conn = psycopg2.connect(**temp_params)
            conn.autocommit = True
            cursor = conn.cursor()

            cursor.execute("SELECT 1 FROM pg_database WHERE datname = %s", (self.connection_params["database"],))
            exists = cursor.fetchone()

            if not exists:
                cursor.execute(
                    sql.SQL("CREATE DATABASE {}").format(sql.Identifier(self.connection_params["database"]))
                )
                print(f"Database '{self.connection_params['database']}' created successfully")
            else:
                print(f"Database '{self.connection_params['database']}' already exists")

            cursor.close()
            conn.close()

        except psycopg2.Error as e:
            print(f"Error creating database: {e}")
            raise

    def _execute(self, statement, success_message):
        conn = psycopg2.connect(**self.connection_params)
        try:
            cursor = conn.cursor()
            cursor.execute(statement)
            conn.commit()
            cursor.close()
            print(success_message)
        finally:
            conn.close()

    def drop_existing_tables(self):
        """Drop the collection table to recreate it"""
        try:
            self._execute("DROP TABLE IF EXISTS ledger_collections CASCADE;", "Existing tables dropped successfully")
        except psycopg2.Error as e:
            print(f"Error dropping tables: {e}")
            raise

    def create_tables(self):
        """Create the collection table"""
        try:
            self._execute(PostgresStore.TABLE_DDL, "Table ledger_collections created successfully")
        except psycopg2.Error as e:
            print(f"Error creating tables: {e}")
            raise

    def setup_database(self, drop_tables=False):
        """Complete database setup"""
        self.create_database_if_not_exists()

        if drop_tables:
            print("Dropping existing tables...")
            self.drop_existing_tables()

        self.create_tables()
        print("PostgreSQL database setup completed successfully!")

    def clear_all_data(self):
        """Remove every stored collection, keeping the table"""
        try:
            self._execute("TRUNCATE TABLE ledger_collections;", "All data cleared successfully")
        except psycopg2.Error as e:
            print(f"Error clearing data: {e}")
            raise


if __name__ == "__main__":
    db_config = Config.get_database_config()
    db_setup = PostgreSQLSetup(
        host=db_config["host"],
        port=db_config["port"],
        database=db_config["database"],
        user=db_config["user"],
        password=db_config["password"],
    )

    # Check for command line arguments
    if len(sys.argv) > 1:
        if sys.argv[1] == "--reset":
            print("Resetting database...")
            db_setup.setup_database(drop_tables=True)
        elif sys.argv[1] == "--clear-data":
            print("Clearing all data...")
            db_setup.clear_all_data()
        else:
            print("Usage: python database_setup.py [--reset|--clear-data]")
    else:
        db_setup.setup_database()
