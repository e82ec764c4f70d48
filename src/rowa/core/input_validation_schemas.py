from __future__ import annotations

from pydantic import BaseModel, conint, constr


class CreateVestingInput(BaseModel):
    category: constr(min_length=1)
    beneficiary: constr(min_length=1)
    amount: conint(strict=True, gt=0)
    revocable: bool | None = None


class ReleaseInput(BaseModel):
    amount: conint(strict=True, gt=0) | None = None
