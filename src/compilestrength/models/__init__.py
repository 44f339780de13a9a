"""Pydantic models shared by the API, tools and client."""
