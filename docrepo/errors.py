class Error(Exception):
    """
    Base class for every exception raised by docrepo.
    """


class UnhandledAction(Error):
    """
    Raised when a result demands an action the caller never registered.
    """

    def __init__(self, action, message: str = None) -> None:
        super().__init__(message)
        self.__action = str(action)

    @property
    def action(self) -> str:
        return self.__action
