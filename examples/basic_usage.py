"""
mobot 基础使用示例

在内存演示场景中执行一段脚本、一条单独指令和一个规划器返回的计划
"""

import sys
from pathlib import Path

# 添加项目根目录到Python路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import asyncio
from loguru import logger

# 创建日志目录
log_dir = project_root / "logs"
log_dir.mkdir(exist_ok=True)

# 配置日志
logger.add(str(log_dir / "mobot_{time}.log"), rotation="1 day", level="INFO")


SCRIPT = """
1. move(desk_01)
2. pick(laptop)
3. move(table_01)
4. place(table_01)
5. open(door_03)
"""


async def main():
    """主函数"""
    from mobot.common.config import load_config
    from mobot.communication.planner_client import PlanResponse
    from mobot.core.task_maker import TaskMaker

    config = load_config(str(project_root / "config" / "execution.yaml"))

    logger.info("初始化 TaskMaker...")
    task_maker = TaskMaker.create_simulated(config=config, speed=4.0)

    # 脚本: 批量执行, 结束时合并输出世界状态更新
    task_maker.submit(SCRIPT)
    await task_maker.wait_until_idle()

    # 单条指令: 更新立即输出
    task_maker.submit("switchon lamp_02")
    await task_maker.wait_until_idle()

    # 规划器响应
    response = PlanResponse.from_dict({
        "success": True,
        "plan_sequence": ["move(table_01)", "pick(book)", "move(desk_01)", "place(desk_01)"],
        "metadata": {"processing_time": 0.42, "original_input": "bring the book to my desk"}
    })
    task_maker.handle_plan_response(response)
    await task_maker.wait_until_idle()

    logger.info(f"执行统计: {task_maker.get_status()['statistics']}")


if __name__ == "__main__":
    asyncio.run(main())
