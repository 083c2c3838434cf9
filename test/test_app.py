"""
服务装配测试
Formation App Tests

作者: lx
日期: 2025-06-20
描述: 内存模式下的启动、配置加载和端到端调用
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import json

import pytest

from common.config import get_balance
from common.database.distributed_lock import LocalLockProvider
from common.database.repositories import InMemoryFormationRepository
from services.formation.main import FormationApp, ServiceConfig

from conftest import FULL_TEAM, OWNER, SERVER, build_roster_provider, make_slots


class TestFormationApp:
    """服务装配测试"""

    @pytest.mark.asyncio
    async def test_start_in_memory(self, tmp_path, progress_provider):
        (tmp_path / "formation_balance.json").write_text(
            json.dumps({"version": "test", "rules": {"max_formations": 2}}), encoding="utf-8"
        )
        app = FormationApp(
            ServiceConfig(config_dir=str(tmp_path)),
            roster_provider=build_roster_provider(),
            progress_provider=progress_provider
        )
        await app.start()

        assert app.config_loader.is_loaded
        assert get_balance().rules.max_formations == 2
        assert isinstance(app.formation_service.repository, InMemoryFormationRepository)
        assert isinstance(app.formation_service.lock_provider, LocalLockProvider)
        assert app.battle_setup_service.progress_provider is progress_provider

        service = app.formation_service
        assert (await service.create_formation(OWNER, SERVER, "A", make_slots(*FULL_TEAM), set_active=True)).success
        assert (await service.create_formation(OWNER, SERVER, "B", [])).success
        third = await service.create_formation(OWNER, SERVER, "C", [])
        assert third.code == "MAX_FORMATIONS_REACHED"

        preview = await app.battle_setup_service.preview_stage_battle(OWNER, SERVER, 1, 1)
        assert preview.preview.player_formation.total_power == 1710

        await app.stop()

    @pytest.mark.asyncio
    async def test_start_without_config_file(self, tmp_path):
        app = FormationApp(ServiceConfig(config_dir=str(tmp_path)))
        await app.start()
        assert not app.config_loader.is_loaded
        assert get_balance().rules.max_formations == 10
        await app.stop()

    @pytest.mark.asyncio
    async def test_unknown_storage(self, tmp_path):
        app = FormationApp(ServiceConfig(config_dir=str(tmp_path), storage="sqlite"))
        with pytest.raises(ValueError):
            await app.start()
