"""
Routing of retrieval results to caller-supplied actions.

Nothing is silently dropped: a result must either reach a registered action
or be escalated as an exception.
"""

import logging
from typing import Any, Callable, Iterator, Optional, Tuple

from .errors import UnhandledAction
from .results import HttpResult


logger = logging.getLogger(__name__)

ACTION_KINDS = ('complete', 'error', 'not_found', 'redirect')


class ResultHandler:
    """
    A table of up to four single-argument actions, one per result kind.

    Each registering method returns the action, so they double as decorators::

        handler = ResultHandler()

        @handler.complete
        def show(doc):
            ...
    """

    def __init__(self, **actions: Callable[[Any], Any]) -> None:
        self.__actions = {}
        self.__frozen = False
        for kind, action in actions.items():
            if kind not in ACTION_KINDS:
                raise TypeError('Unknown result action: {}'.format(kind))
            self._register(kind, action)

    def _register(self, kind: str, action: Callable[[Any], Any]) -> Callable[[Any], Any]:
        if self.__frozen:
            raise RuntimeError('Result handler is frozen')
        if not callable(action):
            raise TypeError('Result handler action required')
        self.__actions[kind] = action
        return action

    def complete(self, action: Callable[[Any], Any]) -> Callable[[Any], Any]:
        return self._register('complete', action)

    def error(self, action: Callable[[Any], Any]) -> Callable[[Any], Any]:
        return self._register('error', action)

    def not_found(self, action: Callable[[Any], Any]) -> Callable[[Any], Any]:
        return self._register('not_found', action)

    def redirect(self, action: Callable[[Any], Any]) -> Callable[[Any], Any]:
        return self._register('redirect', action)

    def freeze(self) -> 'ResultHandler':
        self.__frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self.__frozen

    def __getitem__(self, kind: str) -> Optional[Callable[[Any], Any]]:
        return self.__actions.get(kind)

    def get(self, kind: str, default=None):
        return self.__actions.get(kind, default)

    def __iter__(self) -> Iterator[Tuple[str, Callable[[Any], Any]]]:
        return iter(list(self.__actions.items()))

    def __repr__(self) -> str:
        return '<ResultHandler actions={}>'.format(sorted(self.__actions))


def dispatch(result: HttpResult, handler: ResultHandler):
    """
    Hand `result` to the matching action of `handler` and return what it returns.

    The first matching rule wins:
    - redirects go to `redirect`, which receives the redirect URL;
    - successes go to `complete`;
    - not found errors go to `not_found`, falling back to `error`;
    - every other error goes to `error`.

    @throws UnhandledAction
      If a redirect or success has no action.
    @throws HttpError, GatewayError
      The result itself, if an error has no action.
    """
    handler.freeze()
    if result.is_redirect:
        action = handler.get('redirect')
        if action is None:
            raise UnhandledAction('redirect', 'no result redirect handler defined for {!r}'.format(handler))
        logger.info('Dispatching redirect to {}'.format(result.url))
        return action(result.url)

    if result.is_success:
        action = handler.get('complete')
        if action is None:
            raise UnhandledAction('complete', 'no result completion handler defined for {!r}'.format(handler))
        return action(result)

    if result.is_not_found:
        action = handler.get('not_found', handler.get('error'))
    else:
        action = handler.get('error')
    if action is None:
        logger.warning('No action registered for {}. Raising it.'.format(result))
        raise result
    return action(result)
