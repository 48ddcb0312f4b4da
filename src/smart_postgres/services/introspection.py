"""Schema introspection over information_schema and pg_catalog."""

import json
import logging

from smart_postgres.models.schema import DatabaseSchema
from smart_postgres.services.database import DatabaseService
from smart_postgres.services.schema_cache import SchemaCache

logger = logging.getLogger(__name__)

# One round trip: every base table in "public" with its columns, foreign keys,
# indexes, CHECK/UNIQUE constraints and statistics, as a single jsonb array.
SCHEMA_QUERY = """
    WITH table_columns AS (
        SELECT
            t.table_name,
            jsonb_agg(
                jsonb_build_object(
                    'name', c.column_name,
                    'type', c.udt_name,
                    'nullable', c.is_nullable = 'YES',
                    'description', pd.description,
                    'default', c.column_default,
                    'isPrimary', EXISTS (
                        SELECT 1
                        FROM information_schema.table_constraints tc
                        JOIN information_schema.key_column_usage kcu
                            ON tc.constraint_name = kcu.constraint_name
                            AND tc.table_schema = kcu.table_schema
                            AND tc.table_name = kcu.table_name
                        WHERE tc.constraint_type = 'PRIMARY KEY'
                            AND tc.table_schema = 'public'
                            AND tc.table_name = t.table_name
                            AND kcu.column_name = c.column_name
                    )
                ) ORDER BY c.ordinal_position
            ) AS columns
        FROM information_schema.tables t
        JOIN information_schema.columns c
            ON c.table_name = t.table_name
            AND c.table_schema = t.table_schema
        LEFT JOIN pg_catalog.pg_statio_all_tables st
            ON st.schemaname = t.table_schema
            AND st.relname = t.table_name
        LEFT JOIN pg_catalog.pg_description pd
            ON pd.objoid = st.relid
            AND pd.objsubid = c.ordinal_position
        WHERE t.table_schema = 'public'
            AND t.table_type = 'BASE TABLE'
        GROUP BY t.table_name
    ),
    foreign_keys AS (
        SELECT
            tc.table_name,
            jsonb_agg(
                jsonb_build_object(
                    'column', kcu.column_name,
                    'referencedTable', ccu.table_name,
                    'referencedColumn', ccu.column_name,
                    'onDelete', rc.delete_rule,
                    'onUpdate', rc.update_rule
                )
            ) AS foreign_keys
        FROM information_schema.table_constraints tc
        JOIN information_schema.key_column_usage kcu
            ON tc.constraint_name = kcu.constraint_name
            AND tc.table_schema = kcu.table_schema
        JOIN information_schema.constraint_column_usage ccu
            ON ccu.constraint_name = tc.constraint_name
            AND ccu.table_schema = tc.table_schema
        JOIN information_schema.referential_constraints rc
            ON rc.constraint_name = tc.constraint_name
        WHERE tc.constraint_type = 'FOREIGN KEY'
            AND tc.table_schema = 'public'
        GROUP BY tc.table_name
    ),
    table_indexes AS (
        SELECT
            c.relname AS table_name,
            jsonb_agg(
                jsonb_build_object(
                    'name', i.relname,
                    'isUnique', ix.indisunique,
                    'isPrimary', ix.indisprimary,
                    'definition', pg_get_indexdef(i.oid),
                    'isValid', ix.indisvalid,
                    'indexType', am.amname
                )
            ) AS indexes
        FROM pg_catalog.pg_class c
        JOIN pg_catalog.pg_index ix ON ix.indrelid = c.oid
        JOIN pg_catalog.pg_class i ON i.oid = ix.indexrelid
        JOIN pg_catalog.pg_am am ON am.oid = i.relam
        JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
        WHERE c.relkind = 'r'
            AND n.nspname = 'public'
        GROUP BY c.relname
    ),
    table_constraints AS (
        SELECT
            tc.table_name,
            jsonb_agg(
                jsonb_build_object(
                    'name', tc.constraint_name,
                    'type', tc.constraint_type,
                    'definition', CASE
                        WHEN tc.constraint_type IN ('CHECK', 'UNIQUE')
                            THEN pg_get_constraintdef(pgc.oid)
                        ELSE NULL
                    END
                )
            ) AS constraints
        FROM information_schema.table_constraints tc
        LEFT JOIN pg_catalog.pg_constraint pgc
            ON pgc.conname = tc.constraint_name
            AND pgc.connamespace = (
                SELECT oid FROM pg_catalog.pg_namespace WHERE nspname = tc.table_schema
            )
        WHERE tc.table_schema = 'public'
            AND tc.constraint_type NOT IN ('PRIMARY KEY', 'FOREIGN KEY')
        GROUP BY tc.table_name
    ),
    table_stats AS (
        SELECT
            c.relname AS table_name,
            jsonb_build_object(
                'totalRows', COALESCE(s.n_live_tup, 0),
                'sizeInBytes', pg_total_relation_size(c.oid),
                'lastVacuum', s.last_vacuum,
                'lastAutoVacuum', s.last_autovacuum,
                'lastAnalyze', s.last_analyze,
                'lastAutoAnalyze', s.last_autoanalyze,
                'modificationsSinceAnalyze', s.n_mod_since_analyze
            ) AS stats
        FROM pg_catalog.pg_class c
        JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
        LEFT JOIN pg_catalog.pg_stat_user_tables s ON s.relid = c.oid
        WHERE n.nspname = 'public'
            AND c.relkind = 'r'
    )
    SELECT
        COALESCE(
            jsonb_agg(
                jsonb_build_object(
                    'name', tcol.table_name,
                    'columns', tcol.columns,
                    'foreignKeys', COALESCE(fk.foreign_keys, '[]'::jsonb),
                    'indexes', COALESCE(ti.indexes, '[]'::jsonb),
                    'constraints', COALESCE(tcon.constraints, '[]'::jsonb),
                    'statistics', COALESCE(ts.stats, '{}'::jsonb)
                )
                ORDER BY tcol.table_name
            ),
            '[]'::jsonb
        ) AS schema
    FROM table_columns tcol
    LEFT JOIN foreign_keys fk ON fk.table_name = tcol.table_name
    LEFT JOIN table_indexes ti ON ti.table_name = tcol.table_name
    LEFT JOIN table_constraints tcon ON tcon.table_name = tcol.table_name
    LEFT JOIN table_stats ts ON ts.table_name = tcol.table_name
"""


def parse_schema(raw: str | list | None) -> DatabaseSchema:
    """Build a DatabaseSchema from the catalog query's jsonb value.

    asyncpg hands jsonb back as text unless a codec is registered.
    """
    if raw is None:
        return DatabaseSchema(tables=[])
    tables = json.loads(raw) if isinstance(raw, str) else raw
    return DatabaseSchema.model_validate({"tables": tables or []})


async def introspect_schema(db: DatabaseService) -> DatabaseSchema:
    """Read the schema of the connected database."""
    raw = await db.fetchval(SCHEMA_QUERY)
    schema = parse_schema(raw)
    logger.info("Introspected %d tables from %s", len(schema.tables), db.config.cache_key)
    return schema


async def get_schema(
    db: DatabaseService, cache: SchemaCache | None = None, refresh: bool = False
) -> DatabaseSchema:
    """Return the cached schema for this connection, introspecting on a miss."""
    if cache is None:
        return await introspect_schema(db)

    if refresh:
        cache.invalidate(db.config)
    else:
        cached = cache.get(db.config)
        if cached is not None:
            return cached

    schema = await introspect_schema(db)
    cache.set(db.config, schema)
    return schema
