import asyncio

from src.debounce import DebouncedSearch


def test_rapid_queries_only_search_the_last_one() -> None:
    calls: list[str] = []
    applied: list[tuple[str, list[str]]] = []

    async def search(query: str) -> list[str]:
        calls.append(query)
        return [f"{query} result"]

    async def scenario() -> None:
        debounced = DebouncedSearch(
            search, lambda query, results: applied.append((query, results)), delay_seconds=0.02, min_length=1
        )
        debounced.submit("Ma")
        await asyncio.sleep(0.005)
        debounced.submit("Make")
        await asyncio.sleep(0.1)

    asyncio.run(scenario())

    assert calls == ["Make"]
    assert applied == [("Make", ["Make result"])]


def test_stale_in_flight_result_is_discarded() -> None:
    calls: list[str] = []
    applied: list[tuple[str, list[str]]] = []

    async def scenario() -> None:
        release_stale = asyncio.Event()

        async def search(query: str) -> list[str]:
            calls.append(query)
            if query == "Mak":
                await release_stale.wait()
                return ["stale"]
            return ["fresh"]

        debounced = DebouncedSearch(
            search, lambda query, results: applied.append((query, results)), delay_seconds=0.01, min_length=1
        )
        debounced.submit("Mak")
        await asyncio.sleep(0.05)
        assert debounced.is_searching

        debounced.submit("Make")
        await asyncio.sleep(0.05)
        release_stale.set()
        await asyncio.sleep(0.02)

    asyncio.run(scenario())

    assert calls == ["Mak", "Make"]
    assert applied == [("Make", ["fresh"])]


def test_short_query_clears_results_without_searching() -> None:
    calls: list[str] = []
    applied: list[tuple[str, list[str]]] = []

    async def search(query: str) -> list[str]:
        calls.append(query)
        return ["unexpected"]

    async def scenario() -> None:
        debounced = DebouncedSearch(search, lambda query, results: applied.append((query, results)), delay_seconds=0.01)
        debounced.submit("Mak")
        debounced.submit("Ma")
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert calls == []
    assert applied == [("Ma", [])]


def test_search_failure_yields_empty_results() -> None:
    applied: list[tuple[str, list[str]]] = []

    async def search(query: str) -> list[str]:
        raise RuntimeError("quota exceeded")

    async def scenario() -> None:
        debounced = DebouncedSearch(search, lambda query, results: applied.append((query, results)), delay_seconds=0.01)
        debounced.submit("Make Den")
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert applied == [("Make Den", [])]


def test_close_cancels_pending_timer_and_in_flight_search() -> None:
    calls: list[str] = []
    applied: list[tuple[str, list[str]]] = []

    async def scenario() -> None:
        async def slow_search(query: str) -> list[str]:
            calls.append(query)
            await asyncio.sleep(1)
            return ["late"]

        debounced = DebouncedSearch(
            slow_search, lambda query, results: applied.append((query, results)), delay_seconds=0.01
        )
        debounced.submit("Make Den")
        await asyncio.sleep(0.03)
        debounced.close()
        debounced.submit("Studio")
        await asyncio.sleep(0.03)
        assert not debounced.pending

        timer_only = DebouncedSearch(
            slow_search, lambda query, results: applied.append((query, results)), delay_seconds=0.01
        )
        timer_only.submit("Gallery")
        timer_only.close()
        await asyncio.sleep(0.03)

    asyncio.run(scenario())

    assert calls == ["Make Den"]
    assert applied == []
