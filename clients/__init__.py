# Infrastructure clients
from clients.postgres_client import PostgresClient
