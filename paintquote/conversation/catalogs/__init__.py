"""Step catalogs, one per intake flow."""

from paintquote.conversation.catalogs.quote_chat import QUOTE_CHAT_CATALOG
from paintquote.conversation.catalogs.setup import SETUP_CATALOG
from paintquote.conversation.steps import StepCatalog
from paintquote.schemas.enums import IntakeFlow

CATALOGS: dict[IntakeFlow, StepCatalog] = {
    IntakeFlow.QUOTE: QUOTE_CHAT_CATALOG,
    IntakeFlow.SETUP: SETUP_CATALOG,
}


def get_catalog(flow: IntakeFlow) -> StepCatalog:
    return CATALOGS[flow]


__all__ = ["CATALOGS", "QUOTE_CHAT_CATALOG", "SETUP_CATALOG", "get_catalog"]
