from pydantic import BaseModel


class AnalyticsSummaryOut(BaseModel):
    total_users: int
    total_listings: int
    meals_delivered: int
    meals_available: int
    active_deliveries: int
    completed_requests: int
