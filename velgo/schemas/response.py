from pydantic import BaseModel
from typing import Optional, Any, List, Dict

class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None


class ToastPayload(BaseModel):
    message: str
    kind: str


class ScreenResponse(BaseModel):
    """
    What the shell should draw for a tab right now.
    """
    tab_id: str
    screen: str
    view: str
    data: Optional[Any] = None
    props: Dict[str, Any] = {}
    back_fallback: Optional[str] = None
    actions: List[str] = []
    show_navigation: bool = False
    active_tab: Optional[str] = None
    theme: str = "light"
    scroll_to_top: bool = False
    toast: Optional[ToastPayload] = None
    show_guide: bool = False
    history: Optional[Dict[str, Any]] = None


class PaymentResponse(BaseModel):
    """
    Config for the payment popup. Amount is in kobo.
    """
    reference: str
    email: str
    amount: int
    public_key: str
    tier: str
