from pydantic import BaseModel


class ResetSummary(BaseModel):
    portfolios_deleted: int = 0
    transactions_unlinked: int = 0
