"""Pydantic schemas for the car rental API."""

from app.schemas.car import *
from app.schemas.client import *
from app.schemas.booking import *
from app.schemas.notifications import *
