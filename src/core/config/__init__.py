"""
Configuration subsystem for BodyCount (2025).

Static vs Dynamic Configuration
--------------------------------
**Static (Config):**
- Loaded from environment variables at startup (.env supported)
- Includes: environment, logging switches, database URL, config directory
- Changes require a restart (except `Config.reload_safe_configs()`)

**Dynamic (ConfigManager):**
- Loaded from YAML defaults under `Config.CONFIG_DIR` plus runtime overrides
- Includes: reward policy (`rewards.*`) and scheduler pacing
  (`rewards.scheduler.*`)
- Read fresh at every decision point, so overrides apply on the next tick

Usage Examples
--------------
```python
from src.core.config import Config, ConfigManager

ConfigManager.initialize()
unit = ConfigManager.get("rewards.kill_unit", 1000)
ConfigManager.set("rewards.grant_missed_opportunities", True, modified_by="admin")
```
"""

from src.core.config.config import Config, Environment
from src.core.config.manager import ConfigManager, ConfigManagerError, ConfigWriteError

__all__ = [
    "Config",
    "Environment",
    "ConfigManager",
    "ConfigManagerError",
    "ConfigWriteError",
]
