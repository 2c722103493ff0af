import asyncio
import sys
import threading

from connect_four.core.config import configure_logging, registry
from connect_four.engine.board import GameOutcome
from connect_four.models.enums import Piece, PlayerType
from connect_four.services.game_session import GameSession
from connect_four.services.visual_adapter import VisualAdapter


class ConsoleVisualAdapter(VisualAdapter):
    def __init__(self):
        self.session = None
        self.finished = asyncio.Event()

    async def enable_input(self):
        board = self.session.board
        print(f"\nYour Move, {board.turn.name} (Columns {board.valid_moves()}), 'r' resets, 'q' quits: ")

    async def disable_input(self):
        pass

    async def animate_drop(self, column: int, row: int, piece: Piece):
        print(f"\n{piece.name} plays Column: {column}")
        print(self.session.board.get_visual_board())

    async def show_thinking_indicator(self, sweep):
        print("\nComputer is thinking...")

    async def hide_thinking_indicator(self):
        pass

    async def show_game_over(self, outcome: GameOutcome):
        print(f"\nGame Over! {outcome.describe()}")
        self.finished.set()

    async def update_evaluation_display(self, scores, depth):
        pass

    async def show_error(self, message: str):
        print(f"\nSolver Error: {message}")
        self.finished.set()


def start_stdin_reader(lines: asyncio.Queue):
    """input() blocks, so it lives on a daemon thread that never holds up exit."""
    loop = asyncio.get_running_loop()

    def read():
        for line in sys.stdin:
            loop.call_soon_threadsafe(lines.put_nowait, line.strip())
        loop.call_soon_threadsafe(lines.put_nowait, "q")

    threading.Thread(target=read, name="console-stdin", daemon=True).start()


async def main(players):
    print("=======================================")
    print(f"   CONNECT FOUR: {players[0]} vs {players[1]}")
    print("=======================================")

    visual = ConsoleVisualAdapter()
    settings = registry.game.model_copy(update={"players": players})
    session = GameSession(visual, settings)
    visual.session = session

    lines: asyncio.Queue = asyncio.Queue()
    start_stdin_reader(lines)

    await session.start()
    print(session.board.get_visual_board())

    try:
        while not visual.finished.is_set():
            next_line = asyncio.ensure_future(lines.get())
            game_over = asyncio.ensure_future(visual.finished.wait())
            await asyncio.wait([next_line, game_over], return_when=asyncio.FIRST_COMPLETED)
            game_over.cancel()
            if not next_line.done():
                next_line.cancel()
                break

            text = next_line.result()
            if text == "q":
                break
            if text == "r":
                await session.reset()
                print(session.board.get_visual_board())
                continue
            try:
                column = int(text)
            except ValueError:
                print("Please enter a valid number.")
                continue
            if not session.column_clicked(column):
                print("Invalid column. Try again.")
    finally:
        await session.stop()


if __name__ == "__main__":
    configure_logging("WARNING")
    chosen = tuple(PlayerType(arg) for arg in sys.argv[1:3]) or registry.game.players
    if len(chosen) != 2:
        sys.exit("usage: console_test.py [human|computer] [human|computer]")
    asyncio.run(main(chosen))
