from typing import List, Optional

from pydantic import BaseModel

from schemas.inventory import NoticeOut


class LogoRead(BaseModel):
    logo: Optional[str] = None
    notices: List[NoticeOut] = []
