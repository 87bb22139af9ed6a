#!/usr/bin/env python
"""
快捷启动脚本 - 直接运行 FastAPI 应用
使用方法: python run.py 或 ./run.py
支持自动清理端口占用 (AUTO_CLEAN=true)
"""
import os
import platform
import signal
import socket
import subprocess
import sys
import time
from pathlib import Path

# 添加项目根目录到Python路径
sys.path.insert(0, str(Path(__file__).parent))


def is_port_in_use(port: int) -> bool:
    """检查端口是否被占用"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind(("", port))
            return False
        except OSError:
            return True


def kill_process_on_port(port: int, force: bool = False) -> bool:
    """终止占用指定端口的进程 (macOS / Linux)"""
    if platform.system() not in ("Darwin", "Linux"):
        print(f"⚠️ Automatic port cleanup is not supported on {platform.system()}")
        return False

    result = subprocess.run(["lsof", "-t", f"-i:{port}"], capture_output=True, text=True)
    pids = [pid for pid in result.stdout.strip().split("\n") if pid]
    sig = signal.SIGKILL if force else signal.SIGTERM
    for pid in pids:
        try:
            os.kill(int(pid), sig)
            print(f"✅ Terminated process {pid} using port {port}")
        except (ProcessLookupError, PermissionError, ValueError) as e:
            print(f"⚠️ Could not terminate {pid}: {e}")
    return bool(pids)


def free_port(port: int) -> bool:
    """优雅关闭，仍被占用则强制关闭"""
    if kill_process_on_port(port, force=False):
        time.sleep(2)
        if is_port_in_use(port):
            print(f"⚠️ Port {port} still in use. Force killing...")
            kill_process_on_port(port, force=True)
            time.sleep(1)
    return not is_port_in_use(port)


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    host = os.getenv("HOST", "0.0.0.0")
    auto_clean = os.getenv("AUTO_CLEAN", "false").lower() == "true"
    reload = os.getenv("RELOAD", "true").lower() == "true"

    if is_port_in_use(port):
        print(f"⚠️ Port {port} is already in use")
        if not auto_clean or not free_port(port):
            print(f"❌ Port {port} is busy. Use a different port: PORT=8001 python {__file__}")
            print(f"Or enable auto-clean: AUTO_CLEAN=true python {__file__}")
            sys.exit(1)

    print("=" * 60)
    print("🚀 Campaign Detector API")
    print("=" * 60)
    print(f"📍 Server: http://{host}:{port}")
    print(f"📚 API Docs: http://localhost:{port}/docs")
    print("=" * 60)

    try:
        uvicorn.run(
            "campaign_detector.main:app",  # 使用字符串导入以支持 reload
            host=host,
            port=port,
            reload=reload,
            log_level="info"
        )
    except KeyboardInterrupt:
        print("\n👋 Server stopped")
        sys.exit(0)
