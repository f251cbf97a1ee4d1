from patience import (
    GameState,
    SOLVABLE_SEEDS,
    current_time_seed,
    is_win,
    new_game,
    run_solve_step,
)
import argparse
import logging
import time
import multiprocessing as mp
from concurrent.futures import ProcessPoolExecutor
import os
from typing import List, Tuple, Optional

logger = logging.getLogger(__name__)

MAX_REPEATS = 3


def play_state(game: GameState, max_steps: int = 1000, verbose: bool = False, print_interval: int = 0) -> Tuple[bool, int]:
    """
    Play ``game`` to the end with the greedy solver.

    Args:
        game: The position to play from (mutated in place)
        max_steps: Maximum number of moves before giving up
        verbose: Whether to print game progress
        print_interval: Number of moves after which to print the board (0 = never print)

    Returns:
        Tuple of (win status, number of moves made)
    """
    steps = 0

    # The fallback move can shuttle a stack between two piles forever
    seen_states: dict[str, int] = {}

    while steps < max_steps:
        if is_win(game):
            if verbose:
                print(f"Game won in {steps} moves!")
            return True, steps

        if not run_solve_step(game):
            if verbose:
                print(f"No more moves after {steps} moves. Game lost.")
            return False, steps
        steps += 1

        if print_interval > 0 and steps % print_interval == 0:
            print(f"\n=== Board after move {steps} ===")
            print(f"Foundations filled: {game.foundation_count()}/52")
            print(game)
            print("Last move:", game.last_move if game.last_move else "None")
            print("=" * 40)

        board = str(game)
        seen_states[board] = seen_states.get(board, 0) + 1
        if seen_states[board] > MAX_REPEATS:
            if verbose:
                print(f"Loop detected after {steps} moves. Game lost.")
            return False, steps

    won = is_win(game)
    if verbose and not won:
        print(f"Reached maximum moves ({max_steps}). Game lost.")
    return won, steps


def play_game(seed: int, max_steps: int = 1000, verbose: bool = False, print_interval: int = 0) -> Tuple[bool, int]:
    """Deal ``seed`` and play it with the greedy solver."""
    logger.debug("Playing seed %d", seed)
    return play_state(new_game(seed), max_steps=max_steps, verbose=verbose, print_interval=print_interval)


def play_game_worker(args: Tuple[int, int, int]) -> Tuple[int, bool, int]:
    seed, max_steps, print_interval = args
    won, steps = play_game(seed, max_steps=max_steps, verbose=False, print_interval=print_interval)
    return seed, won, steps


def play_multiple_games(seeds: List[int], max_steps: int = 1000, print_interval: int = 0,
                        num_processes: Optional[int] = None) -> List[Tuple[int, bool, int]]:
    """
    Play several deals in parallel and report statistics.

    Args:
        seeds: Seeds of the deals to play
        max_steps: Maximum moves per game
        print_interval: Number of moves after which to print the board (0 = never print)
        num_processes: Number of processes to use (None = auto)

    Returns:
        (seed, win status, moves made) for every deal
    """
    num_games = len(seeds)
    if num_games == 0:
        msg = "No seeds to play"
        raise ValueError(msg)
    if num_processes is None or num_processes <= 0:
        num_cpus = os.cpu_count() or 4
        num_processes = min(num_cpus, num_games)
    else:
        num_processes = min(num_processes, num_games)

    print(f"Playing {num_games} games using {num_processes} processes...")

    start_time = time.time()

    game_args = [(seed, max_steps, print_interval) for seed in seeds]
    results: List[Tuple[int, bool, int]] = []
    completed = 0

    with ProcessPoolExecutor(max_workers=num_processes) as executor:
        for result in executor.map(play_game_worker, game_args):
            results.append(result)

            completed += 1
            if completed % max(1, num_games // 20) == 0 or completed == num_games:
                print(f"Completed {completed}/{num_games} games...", end="\r")

    wins = [seed for seed, won, _ in results if won]
    total_steps = sum(steps for _, _, steps in results)

    duration = time.time() - start_time

    print(f"\nResults from {num_games} games:")
    print(f"Win rate: {len(wins) / num_games * 100:.2f}% ({len(wins)}/{num_games})")
    print(f"Average moves per game: {total_steps / num_games:.2f}")
    print(f"Time taken: {duration:.2f} seconds ({duration / num_games:.2f} seconds per game)")
    if wins:
        print("Won seeds:", ", ".join(str(seed) for seed in wins))

    return results


def pick_seeds(args: argparse.Namespace) -> List[int]:
    if args.games < 1:
        msg = f"--games must be at least 1, got {args.games}"
        raise ValueError(msg)
    if args.seed is not None and args.solvable:
        msg = "--seed and --solvable cannot be combined"
        raise ValueError(msg)

    if args.solvable:
        return list(SOLVABLE_SEEDS[: args.games])
    start = args.seed if args.seed is not None else current_time_seed()
    return [start + offset for offset in range(args.games)]


def main() -> None:
    """Main entry point for the CLI application."""
    if hasattr(mp, 'set_start_method'):
        try:
            mp.set_start_method('spawn')
        except RuntimeError:
            pass

    parser = argparse.ArgumentParser(description='Play patience deals with the greedy solver')
    parser.add_argument('--seed', type=int, default=None,
                        help='Seed of the first deal (default: current time)')
    parser.add_argument('--games', type=int, default=1,
                        help='Number of games to play, on consecutive seeds (default: 1)')
    parser.add_argument('--solvable', action='store_true',
                        help='Play the curated solvable seeds instead')
    parser.add_argument('--max-steps', type=int, default=1000,
                        help='Maximum moves per game (default: 1000)')
    parser.add_argument('--verbose', action='store_true',
                        help='Print detailed game progress')
    parser.add_argument('--print-interval', type=int, default=0,
                        help='Print the board every N moves (default: 0 = never)')
    parser.add_argument('--processes', type=int, default=0,
                        help='Number of processes to use (default: 0 = auto)')

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        seeds = pick_seeds(args)
    except ValueError as e:
        parser.error(str(e))

    if len(seeds) == 1:
        won, steps = play_game(seeds[0], max_steps=args.max_steps, verbose=args.verbose,
                               print_interval=args.print_interval)
        print(f"Seed {seeds[0]}: game {'won' if won else 'lost'} after {steps} moves")
    else:
        play_multiple_games(
            seeds,
            max_steps=args.max_steps,
            print_interval=args.print_interval,
            num_processes=args.processes,
        )


if __name__ == "__main__":
    main()
