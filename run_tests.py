#!/usr/bin/env python3
"""
测试运行器
Test Runner

作者: lx
日期: 2025-06-18
描述: 统一测试运行脚本，按模块分组运行阵容服务的测试
"""

import argparse
import sys
import subprocess
from pathlib import Path

TEST_GROUPS = {
    "core": [
        "test/test_roster_validator.py",
        "test/test_synergy.py",
        "test/test_power.py",
        "test/test_battle_estimator.py",
        "test/test_tables.py",
    ],
    "services": [
        "test/test_formation_service.py",
        "test/test_battle_setup.py",
        "test/test_error_handler.py",
        "test/test_app.py",
    ],
    "storage": [
        "test/test_formation_repository.py",
        "test/test_distributed_lock.py",
    ],
    "config": [
        "test/test_config.py",
    ],
}


def run_group(name: str) -> int:
    """运行一组测试"""
    print(f"Running {name} tests...")
    cmd = [sys.executable, "-m", "pytest", *TEST_GROUPS[name], "-v", "--tb=short"]
    return subprocess.run(cmd, cwd=Path(__file__).parent).returncode


def run_all_tests() -> int:
    """运行所有测试"""
    print("=" * 60)
    print("RUNNING ALL TESTS")
    print("=" * 60)

    results = [(name, run_group(name)) for name in TEST_GROUPS]

    print("\n" + "=" * 60)
    print("TEST RESULTS SUMMARY")
    print("=" * 60)

    all_passed = True
    for name, result in results:
        status = "PASSED" if result == 0 else "FAILED"
        print(f"{name}: {status}")
        if result != 0:
            all_passed = False

    return 0 if all_passed else 1


def main():
    parser = argparse.ArgumentParser(description="Formation service test runner")
    parser.add_argument("group", nargs="?", choices=[*TEST_GROUPS, "all"], default="all")
    args = parser.parse_args()

    if args.group == "all":
        sys.exit(run_all_tests())
    sys.exit(run_group(args.group))


if __name__ == "__main__":
    main()
