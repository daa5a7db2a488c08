# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Binary directory caching for fetchbin.

Public API:

- CacheKey: Deterministic key from (tool, tag, platform)
- CacheManager: Best-effort try_restore()/store() with an enabled switch
- CacheStore: Protocol for store backends
- DirectoryCacheStore: One .tar.gz per key under a local directory
"""

from .manager import CacheKey, CacheManager
from .store import CacheStore, DirectoryCacheStore

__all__ = ["CacheKey", "CacheManager", "CacheStore", "DirectoryCacheStore"]
