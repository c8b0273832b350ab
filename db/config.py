from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Core Application Settings
    app_name: str = "Task Tracker"
    version: str = "1.0.0"
    description: str = "Task, subtask and attachment tracking API backed by MongoDB."
    logging_level: str = "INFO"

    # Document Store Settings
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "task_manager_db"
    mongo_timeout_ms: int = 30000
    db_max_connections: int = 50

    # Source Store Settings (migration only)
    # Placeholder, must be overridden per deployment with SQL_CONN or --sql.
    sql_conn: str = (
        "mssql+aioodbc://localhost:1433/issues_tasks_db"
        "?driver=ODBC+Driver+18+for+SQL+Server&TrustServerCertificate=yes"
    )
    source_query_timeout: int = 30

    # Migration Settings
    migration_batch_size: int = 100
    migration_concurrency: int = 10

    # Feature Toggles
    reconcile_counters_on_startup: bool = True
    recent_tasks_limit: int = 5

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
