"""Identifier generation for sales and held carts."""
import uuid


def new_id() -> str:
    """Random 128-bit id; concurrent calls in the same instant never collide."""
    return uuid.uuid4().hex
