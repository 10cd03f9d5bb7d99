"""
Configuration Module for the task execution engine
"""

import json
import yaml
from copy import deepcopy
from typing import Dict, Any, Optional
from pathlib import Path
from loguru import logger


DEFAULT_CONFIG: Dict[str, Any] = {
    "execution": {
        "tick": 0.02,               # 完成检测的轮询间隔(秒)
        "step_gap_delay": 0.2,      # 两个动作之间让出的调度间隔(秒)
        "step_timeout": 15.0,       # move/open/switch 的步骤超时(秒)
        "pick_timeout": 5.0,
        "place_timeout": 5.0,
        "queue_policy": "append",   # append | reject
        "max_history": 1000
    },
    "locomotion": {
        "arrive_threshold": 2.5,    # 直线距离到达判定(米)
        "agent_extra_stop": 1.0,    # remaining_distance 额外余量(米)
        "velocity_epsilon": 0.05,   # 速度平方阈值
        "stand_back_distance": 0.6, # 目标前退一步(米)
        "move_settle_wait": 0.5
    },
    "manipulation": {
        "pick_attach_delay": 2.2,
        "place_detach_delay": 2.17,
        "rotate_speed_deg": 360.0,
        "facing_angle_threshold": 5.0
    },
    "placement": {
        "margin": 0.02,
        "align_yaw_to_target": True,
        "surface_ray_height": 1.5
    },
    "devices": {
        "door_settle_wait": 0.25
    },
    "world": {
        "room_roots": ["lab", "classroom", "hallway", "library"],
        "object_container": "object"
    },
    "planner": {
        "auto_execute_plan": True
    }
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """递归合并配置, override 优先"""
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """
    Configuration management class

    Holds the defaults above, optionally overlaid with a JSON/YAML file or a
    plain dict, and offers dotted-key access (``config.get("execution.tick")``).
    """

    def __init__(self, overrides: Optional[Dict[str, Any]] = None):
        self.default_config = deepcopy(DEFAULT_CONFIG)
        self.config_data: Dict[str, Any] = _deep_merge(self.default_config, overrides or {})

    def load_from_file(self, config_path: str):
        """Load configuration from file"""
        path = Path(config_path)

        if not path.exists():
            logger.warning(f"配置文件不存在: {config_path}, 使用默认配置")
            self.config_data = deepcopy(self.default_config)
            return

        try:
            if path.suffix.lower() == '.json':
                with open(path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            elif path.suffix.lower() in ['.yaml', '.yml']:
                with open(path, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f)
            else:
                raise ValueError(f"Unsupported config format: {path.suffix}")

            # Merge with defaults
            self.config_data = _deep_merge(self.default_config, data or {})
            logger.info(f"已加载配置: {path}")

        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"加载配置失败: {e}, 使用默认配置")
            self.config_data = deepcopy(self.default_config)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key"""
        keys = key.split('.')
        value = self.config_data

        try:
            for k in keys:
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any):
        """Set configuration value by key"""
        keys = key.split('.')
        config = self.config_data

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def section(self, name: str) -> Dict[str, Any]:
        """返回某一节配置的副本"""
        return dict(self.config_data.get(name, {}))

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __setitem__(self, key: str, value: Any):
        self.set(key, value)


def load_config(config_path: Optional[str] = None) -> Config:
    """创建配置; 给定路径时从文件加载"""
    config = Config()
    if config_path:
        config.load_from_file(config_path)
    return config
