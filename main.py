"""AurumSim 统一命令行入口。

该模块提供单一入口 `main.py`，通过子命令驱动不同任务：

- `replay`：快进回放 N 个 tick，输出汇总表（或 JSON）。相同起始时间结果完全一致。
- `run`：实时会话（asyncio），按墙钟推进价格与决策槽，运行指定秒数。
- `snapshot`：回放后导出账户快照 JSON，可用 `ExecutionLedger.from_snapshot` 恢复。
"""

from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.table import Table

from algo.factors.snapshot import indicator_frame
from engine.live import LiveEngine
from engine.replay import ReplayEngine
from shared.config.config_loader import load_config
from shared.config.schema import MainConfig
from shared.models.models import Candle
from shared.utils.logging import set_global_level, setup_logger


@dataclass
class CliArgs:
    """定义命令行参数结构。

    config: 配置文件路径
    task: 要运行的任务类型 (replay/run/snapshot)
    """
    config: str
    task: str
    log_level: str | None = None
    ticks: int = 600              # replay/snapshot 推进的 tick 数
    start_ms: int | None = None   # 回放起始时间（epoch 毫秒），缺省取当前时间
    seconds: float = 30.0         # run 模式运行时长
    as_json: bool = False
    csv_path: str | None = None   # 导出 K 线 + 指标
    output: str | None = None     # snapshot 输出文件


def build_parser() -> argparse.ArgumentParser:
    """构建 CLI 参数解析器。"""
    parser = argparse.ArgumentParser(prog="aurumsim", description="AurumSim 统一入口")

    def _add_common_args(p: argparse.ArgumentParser, *, default: Any) -> None:
        p.add_argument(
            "--config",
            default=default,
            help="配置文件路径 (默认: config/config.yml)",
        )
        p.add_argument(
            "--log-level",
            default=default if default is argparse.SUPPRESS else None,
            choices=["DEBUG", "INFO", "WARNING", "ERROR"],
            help="覆盖配置中的 log_level",
        )

    # 允许 `python main.py --config ... replay`（全局）与 `python main.py replay --config ...`（子命令）
    _add_common_args(parser, default="config/config.yml")

    sub = parser.add_subparsers(dest="task")

    def _add_replay_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--ticks", type=int, default=600, help="推进多少个 tick")
        p.add_argument("--start-ms", type=int, default=None, help="起始时间 (epoch ms)")

    p_replay = sub.add_parser("replay", help="快进回放")
    _add_common_args(p_replay, default=argparse.SUPPRESS)
    _add_replay_args(p_replay)
    p_replay.add_argument("--json", action="store_true", help="以 JSON 输出汇总")
    p_replay.add_argument("--csv", type=str, default=None, help="导出 K 线与指标到 CSV")

    p_run = sub.add_parser("run", help="实时会话")
    _add_common_args(p_run, default=argparse.SUPPRESS)
    p_run.add_argument("--seconds", type=float, default=30.0, help="运行多少秒后停止")

    p_snap = sub.add_parser("snapshot", help="回放后导出账户快照")
    _add_common_args(p_snap, default=argparse.SUPPRESS)
    _add_replay_args(p_snap)
    p_snap.add_argument("--output", type=str, default=None, help="输出文件（缺省打印到 stdout）")

    return parser


def parse_args(argv: list[str] | None = None) -> CliArgs:
    """解析命令行参数。"""
    parser = build_parser()
    ns = parser.parse_args(argv)
    task = ns.task or "replay"
    return CliArgs(
        config=str(getattr(ns, "config", "config/config.yml")),
        task=task,
        log_level=getattr(ns, "log_level", None),
        ticks=int(getattr(ns, "ticks", 600)),
        start_ms=getattr(ns, "start_ms", None),
        seconds=float(getattr(ns, "seconds", 30.0)),
        as_json=bool(getattr(ns, "json", False)),
        csv_path=getattr(ns, "csv", None),
        output=getattr(ns, "output", None),
    )


def render_summary(summary: dict[str, Any], console: Console | None = None) -> Table:
    """把回放汇总渲染成 rich 表格。"""
    table = Table(title=f"AurumSim replay · {summary.get('symbol', '')}", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan bold")
    table.add_column("Value", justify="right")

    table.add_row("Ticks", str(summary["ticks"]))
    table.add_row("Decision slots", str(summary["slots"]))
    decisions = summary.get("decisions") or {}
    table.add_row("BUY / SELL / HOLD", " / ".join(str(decisions.get(k, 0)) for k in ("BUY", "SELL", "HOLD")))
    table.add_row("Trades", str(summary["trades"]))
    table.add_row("Final price", f"${summary['final_price']:.2f}")
    table.add_row("Balance", f"${summary['balance']:.4f}", style="green")
    pnl_style = "green" if summary["realized_pnl"] >= 0 else "red"
    table.add_row("Realized PnL", f"{summary['realized_pnl']:+.4f}", style=pnl_style)
    table.add_row("Unrealized PnL", f"{summary['unrealized_pnl']:+.4f}")
    table.add_row("Position", summary["position"])

    (console or Console()).print(table)
    return table


def _export_csv(artifacts: dict[str, Any], path: str) -> Path:
    candles = [Candle(**c) for c in artifacts.get("candles") or []]
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    indicator_frame(candles).to_csv(out, index=False)
    return out


async def run_live(cfg: MainConfig, seconds: float) -> dict[str, Any]:
    """实时运行一个会话 `seconds` 秒。"""
    result = await LiveEngine(cfg, seconds=seconds).run_async()
    return result.summary


def main(argv: list[str] | None = None) -> Any:
    """程序主入口。

    Returns
    -------
    Any
        对应子命令的返回结果（summary dict 或快照 dict）。
    """
    args = parse_args(argv)
    cfg = load_config(args.config)
    if args.log_level:
        cfg.log_level = args.log_level
    set_global_level(cfg.log_level)
    logger = setup_logger("aurumsim", cfg.log_level)

    # 1. replay: 快进回放
    if args.task == "replay":
        result = ReplayEngine(cfg, ticks=args.ticks, start_ms=args.start_ms).run()
        if args.csv_path:
            out = _export_csv(result.artifacts or {}, args.csv_path)
            logger.info("Candles exported: %s", out)
        if args.as_json:
            print(json.dumps(result.summary, indent=2))
        else:
            render_summary(result.summary)
        return result.summary

    # 2. run: 实时会话
    if args.task == "run":
        return asyncio.run(run_live(cfg, args.seconds))

    # 3. snapshot: 导出账户快照
    if args.task == "snapshot":
        result = ReplayEngine(cfg, ticks=args.ticks, start_ms=args.start_ms).run()
        account = (result.artifacts or {})["account"]
        text = json.dumps(account, indent=2)
        if args.output:
            Path(args.output).write_text(text, encoding="utf-8")
            logger.info("Snapshot written: %s", args.output)
        else:
            print(text)
        return account

    raise ValueError(f"Unknown task: {args.task}")


if __name__ == "__main__":
    main()
