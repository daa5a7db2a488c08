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

"""Configuration loading for fetchbin.

Layers built-in defaults, an optional YAML tool file, action inputs from
the environment, and CLI overrides into one effective configuration.

Public API:

- load_effective_config: Load and merge the effective configuration
- ToolSpec: Typed view of the tool definition
- resolve_cache_dir / resolve_install_dir: Directory defaults
"""

from .loader import (
    DEFAULT_CONFIG,
    ToolSpec,
    load_effective_config,
    parse_bool,
    resolve_cache_dir,
    resolve_install_dir,
)

__all__ = [
    "DEFAULT_CONFIG",
    "ToolSpec",
    "load_effective_config",
    "parse_bool",
    "resolve_cache_dir",
    "resolve_install_dir",
]
