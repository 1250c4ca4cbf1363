#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: alembic/versions/0001_accidents.py
# Purpose: Create the accidents table and the dashboard indexes.
#
# Description of code and how it works:
# - Indexes back the grouped aggregates: (state, county, city),
#   (hour, day_of_week), (year, month), severity and the POI flags.
#
# Author: Tim Canady
# Created: 2025-11-03
#
# Version: 1.0.0
# Last Modified: 2025-11-03 by Tim Canady
#
# Revision History:
# - 1.0.0 (2025-11-03): Initial accidents schema.
###################################################################
#
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_accidents"
down_revision = None
branch_labels = None
depends_on = None

POI_INDEXED = ["junction", "traffic_signal", "stop", "crossing", "bump"]


def upgrade():
    op.create_table(
        "accidents",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("severity", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=True),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("month", sa.Integer(), nullable=True),
        sa.Column("hour", sa.Integer(), nullable=True),
        sa.Column("day_of_week", sa.String(length=16), nullable=True),
        sa.Column("start_lat", sa.Float(), nullable=True),
        sa.Column("start_lng", sa.Float(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("street", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=128), nullable=True),
        sa.Column("county", sa.String(length=128), nullable=True),
        sa.Column("state", sa.String(length=8), nullable=True),
        sa.Column("zipcode", sa.String(length=16), nullable=True),
        sa.Column("temperature", sa.Float(), nullable=True),
        sa.Column("humidity", sa.Float(), nullable=True),
        sa.Column("pressure", sa.Float(), nullable=True),
        sa.Column("visibility", sa.Float(), nullable=True),
        sa.Column("wind_speed", sa.Float(), nullable=True),
        sa.Column("weather_condition", sa.String(length=64), nullable=True),
        sa.Column("junction", sa.Boolean(), nullable=True),
        sa.Column("traffic_signal", sa.Boolean(), nullable=True),
        sa.Column("stop", sa.Boolean(), nullable=True),
        sa.Column("crossing", sa.Boolean(), nullable=True),
        sa.Column("bump", sa.Boolean(), nullable=True),
        sa.Column("give_way", sa.Boolean(), nullable=True),
        sa.Column("railway", sa.Boolean(), nullable=True),
        sa.Column("station", sa.Boolean(), nullable=True),
        sa.Column("amenity", sa.Boolean(), nullable=True),
    )
    op.create_index("ix_accidents_severity", "accidents", ["severity"])
    op.create_index("idx_state_county_city", "accidents", ["state", "county", "city"])
    op.create_index("idx_hour_day_of_week", "accidents", ["hour", "day_of_week"])
    op.create_index("idx_year_month", "accidents", ["year", "month"])
    for col in POI_INDEXED:
        op.create_index(f"idx_poi_{col}", "accidents", [col, "severity"])


def downgrade():
    for col in POI_INDEXED:
        op.drop_index(f"idx_poi_{col}", table_name="accidents")
    for idx in ["idx_year_month", "idx_hour_day_of_week", "idx_state_county_city", "ix_accidents_severity"]:
        op.drop_index(idx, table_name="accidents")
    op.drop_table("accidents")
