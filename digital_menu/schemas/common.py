"""Shared schema types."""

from decimal import Decimal
from typing import Annotated

from fastapi import Path
from pydantic import Field, PlainSerializer

# Signed 64-bit, the widest integer column every supported database stores
MAX_DB_INT = 2**63 - 1

# Exact Decimal in Python, plain JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

DbInt = Annotated[int, Field(ge=-MAX_DB_INT - 1, le=MAX_DB_INT)]

# Row id taken from the URL path
IdPath = Annotated[int, Path(ge=1, le=MAX_DB_INT)]
