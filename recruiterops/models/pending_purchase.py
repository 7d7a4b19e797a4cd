from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class PendingPurchase(BaseModel):
    """A purchase staged for a buyer who has not signed up yet."""
    model_config = ConfigDict(frozen=True)

    email: str
    plan: str
    gumroad_sale_id: Optional[str] = None
    gumroad_subscriber_id: Optional[str] = None
    created_at: Optional[datetime] = None
