"""执行引擎层（engine）。

- `SimulationSession`：单个模拟会话（价格 tick + 决策槽 + 账本）；
- `ReplayEngine.run() -> EngineResult`：快进回放；
- `LiveEngine.run() -> EngineResult`：墙钟驱动，运行固定秒数；
命令行入口由仓库根目录 `main.py` 统一承载。
"""
