"""
Base publisher contract for emitting KPI outputs

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class Publisher(ABC):
    @abstractmethod
    async def publish(self, publication_id: str, server: str, payload: Dict[str, Any]) -> None: ...

    async def aclose(self) -> None:
        return None
