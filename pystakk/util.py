import concurrent.futures
from concurrent.futures import Future
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

# Define TypeVar here instead of importing from typing to avoid circular imports
T = TypeVar('T')
R = TypeVar('R')


def ensure(value: Optional[T]) -> T:
    """Ensure a value is not None, raising RuntimeError if it is.

    Args:
        value: The value to check

    Returns:
        The value if it is not None

    Raises:
        RuntimeError: If the value is None
    """
    if value is None:
        raise RuntimeError("Value is None")
    return value


def first_line(text: str) -> str:
    """Return the first line of a description, stripped."""
    return text.strip().split('\n', 1)[0].strip()


def run_concurrently(func: Callable[[T], R], items: Sequence[T],
                     concurrency: int) -> List[Tuple[Optional[R], Optional[Exception]]]:
    """Run func over items on a thread pool.

    Returns one (result, error) pair per item, in the order of ``items``.
    An exception raised by one call never cancels the others.
    A concurrency below 2 (or a single item) runs sequentially in the caller's thread.
    """
    if concurrency < 2 or len(items) < 2:
        results: List[Tuple[Optional[R], Optional[Exception]]] = []
        for item in items:
            try:
                results.append((func(item), None))
            except Exception as e:
                results.append((None, e))
        return results

    with concurrent.futures.ThreadPoolExecutor(max_workers=concurrency) as executor:
        futures: Sequence[Future[R]] = [executor.submit(func, item) for item in items]
        concurrent.futures.wait(futures)

    collected: List[Tuple[Optional[R], Optional[Exception]]] = []
    for future in futures:
        error = future.exception()
        if error is not None:
            if not isinstance(error, Exception):
                raise error
            collected.append((None, error))
        else:
            collected.append((future.result(), None))
    return collected
