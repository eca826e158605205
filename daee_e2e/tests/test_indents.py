"""O2C indent creation as the IACS Managing Director."""
from pytest_bdd import scenarios

scenarios("o2c/indents.feature")
