# Database utilities package
from .sql import (
    qualified_table,
    run_sql,
    run_sql_dicts,
    run_sql_scalar,
)
