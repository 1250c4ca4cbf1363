#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: alembic/env.py
# Purpose: Alembic env wired to the app settings and the accidents metadata.
#
# Description of code and how it works:
# - DATABASE_URL comes from usaccidents_insights.config (which loads .env).
# - Percent-escapes '%' to '%%' before setting sqlalchemy.url to satisfy ConfigParser.
# - Offline mode renders SQL with literal binds; online mode uses NullPool
#   and batch mode on SQLite.
#
# Author: Tim Canady
# Created: 2025-09-28
#
# Version: 0.8.0
# Last Modified: 2025-11-03 by Tim Canady
#
# Revision History:
# - 0.8.0 (2025-11-03): Read URL via app settings; target accidents metadata.
# - 0.7.2 (2025-10-08): Add standardized header; dotenv explicit path; percent-escape URL.
###################################################################
#
from logging.config import fileConfig
import logging

from alembic import context
from sqlalchemy import engine_from_config, pool

from usaccidents_insights.config import load_settings
from usaccidents_insights.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

log = logging.getLogger("alembic.env")

db_url = load_settings().database_url
if db_url:
    config.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))
else:
    log.warning("DATABASE_URL not set; using sqlalchemy.url from alembic.ini")

target_metadata = Base.metadata


def run_migrations_offline():
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite dev databases cannot ALTER most columns in place
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
