from daee_e2e.pages.base import BasePage
from daee_e2e.pages.gstr1 import GSTR1Page
from daee_e2e.pages.indents import IndentsPage
from daee_e2e.pages.login import LoginPage

__all__ = ["BasePage", "GSTR1Page", "IndentsPage", "LoginPage"]
