"""Tests for last-issued-wins frame requests."""

import asyncio

import numpy as np
import pytest
import pytest_asyncio
from loguru import logger

import tlcview
from tlcview.session import Session
from tlcview.util import TEST_LOGLEVEL


class TestFrameViewer:
    @pytest.fixture(autouse=True, scope="class")
    def client_log(self):
        tlcview.util.start_client_log(
            log_level=TEST_LOGLEVEL, log_to_stdout=True, log_to_file=False
        )
        yield
        tlcview.util.shutdown_client_log()

    @pytest.fixture(autouse=True)
    def log(self, request):
        logger.warning("STARTED Test '{}'".format(request.node.originalname))

        def fin():
            logger.warning("COMPLETED Test '{}' \n".format(request.node.originalname))

        request.addfinalizer(fin)

    @pytest_asyncio.fixture
    async def session(self, fake_engine, video_file):
        session = Session(fake_engine)
        assert await session.load_default_config()
        assert await session.set_video_path(video_file)
        fake_engine.calls.clear()
        fake_engine.hold_frames = True
        return session

    @pytest.mark.asyncio
    async def test_first_frame_follows_video(self, fake_engine, video_file):
        session = Session(fake_engine)
        seen = []
        session.frames.subscribe(seen.append)
        await session.load_default_config()
        await session.set_video_path(video_file)
        assert [f.index for f in seen] == [0]
        assert (seen[0].height, seen[0].width) == (240, 320)
        assert session.frames.frame.rgba.shape == (240, 320, 4)

    @pytest.mark.asyncio
    async def test_late_reply_is_dropped(self, session: Session, fake_engine):
        t5 = asyncio.create_task(session.request_frame(5))
        t9 = asyncio.create_task(session.request_frame(9))
        await fake_engine.wait_held(2)

        fake_engine.release(9)
        assert await t9
        fake_engine.release(5)
        assert not await t5

        assert session.frames.frame.index == 9
        assert not session.errors.is_set

    @pytest.mark.asyncio
    async def test_in_order_replies(self, session: Session, fake_engine):
        t5 = asyncio.create_task(session.request_frame(5))
        t9 = asyncio.create_task(session.request_frame(9))
        await fake_engine.wait_held(2)

        fake_engine.release(5)
        assert not await t5
        fake_engine.release(9)
        assert await t9
        assert session.frames.frame.index == 9

    @pytest.mark.asyncio
    async def test_scrubbing_installs_only_the_last(self, session: Session, fake_engine):
        seen = []
        session.frames.subscribe(seen.append)
        tasks = [asyncio.create_task(session.request_frame(i)) for i in range(1, 11)]
        await fake_engine.wait_held(10)
        for index in reversed(range(1, 11)):
            fake_engine.release(index)
        results = await asyncio.gather(*tasks)
        assert results == [False] * 9 + [True]
        assert [f.index for f in seen] == [10]

    @pytest.mark.asyncio
    async def test_stale_failure_is_silent(self, session: Session, fake_engine):
        t5 = asyncio.create_task(session.request_frame(5))
        t9 = asyncio.create_task(session.request_frame(9))
        await fake_engine.wait_held(2)

        fake_engine.fail(5, "Decoder hiccup")
        assert not await t5
        assert not session.errors.is_set

        fake_engine.release(9)
        assert await t9
        assert session.frames.frame.index == 9

    @pytest.mark.asyncio
    async def test_current_failure_is_surfaced(self, session: Session, fake_engine):
        before = session.frames.frame
        t3 = asyncio.create_task(session.request_frame(3))
        await fake_engine.wait_held(1)
        fake_engine.fail(3, "Frame gone")
        assert not await t3
        assert session.errors.message == "Frame gone"
        assert session.frames.frame is before

    @pytest.mark.asyncio
    async def test_request_is_clamped(self, session: Session, fake_engine):
        task = asyncio.create_task(session.request_frame(5000))
        await fake_engine.wait_held(1)
        assert fake_engine.called("get_frame") == [("get_frame", 999)]
        fake_engine.release(999)
        assert await task
        assert session.frames.desired_index == 999

    @pytest.mark.asyncio
    async def test_wrong_size_is_surfaced(self, session: Session, fake_engine):
        fake_engine.hold_frames = False
        fake_engine.overrides["get_frame"] = np.zeros(10, dtype=np.uint8)
        assert not await session.request_frame(4)
        assert "expected" in session.errors.message
        assert session.frames.frame.index == 0

    @pytest.mark.asyncio
    async def test_repeated_index_keeps_the_newest_reply(
        self, session: Session, fake_engine
    ):
        seen = []
        session.frames.subscribe(seen.append)
        older = asyncio.create_task(session.request_frame(5))
        newer = asyncio.create_task(session.request_frame(5))
        await fake_engine.wait_held(2)

        fake_engine.release(5, newest=True)
        assert await newer
        fake_engine.release(5)
        assert not await older
        assert len(seen) == 1
        assert session.frames.frame is seen[0]

    @pytest.mark.asyncio
    async def test_empty_failure_message_is_surfaced(
        self, session: Session, fake_engine
    ):
        t3 = asyncio.create_task(session.request_frame(3))
        await fake_engine.wait_held(1)
        fake_engine.fail(3, "")
        assert not await t3
        assert session.errors.message == "Frame 3 failed"
