from typing import Generic, TypeVar, Optional, Callable, Union
from http import HTTPStatus

T = TypeVar('T')  # Generic type variable
U = TypeVar('U')  # Type variable for chained operations

class Result(Generic[T]):
    """
    Outcome of an upload or import step that can fail in an expected way.

    A Result carries either the produced data or an error message together with
    the HTTP status the failure maps to, so that the API layer can turn it into
    a response without knowing which step failed.

    Attributes:
        success (bool): Indicates if the operation was successful
        data (Optional[T]): The result data (only present when success is True)
        error (Optional[str]): Error message (only present when success is False)
        status_code (HTTPStatus): HTTP status code (default: 200 for success, 400 for failure)
    """
    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        error: Optional[str] = None,
        status_code: Optional[Union[int, HTTPStatus]] = None
    ):
        self.success = success
        self.data = data
        self.error = error

        if status_code is None:
            self.status_code = HTTPStatus.OK if success else HTTPStatus.BAD_REQUEST
        elif isinstance(status_code, int):
            self.status_code = HTTPStatus(status_code)
        else:
            self.status_code = status_code

    @classmethod
    def ok(cls, data: T, status_code: Optional[Union[int, HTTPStatus]] = HTTPStatus.OK) -> "Result[T]":
        """Wrap successfully produced data."""
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def fail(cls, error: str, status_code: Optional[Union[int, HTTPStatus]] = HTTPStatus.BAD_REQUEST) -> "Result[T]":
        """Wrap an error message with the status it should be reported with."""
        return cls(success=False, error=error, status_code=status_code)

    @classmethod
    def invalid_input(cls, error: str = "Invalid input data") -> "Result[T]":
        """
        Create a failed Result for input that could not be understood,
        such as bytes that are not a spreadsheet.

        Returns:
            Result[T]: A failed Result with 400 status code
        """
        return cls(success=False, error=error, status_code=HTTPStatus.BAD_REQUEST)

    @classmethod
    def too_large(cls, error: str = "File is too large") -> "Result[T]":
        """
        Create a failed Result for an upload above the accepted size.

        Returns:
            Result[T]: A failed Result with 413 status code
        """
        return cls(success=False, error=error, status_code=HTTPStatus.REQUEST_ENTITY_TOO_LARGE)

    @classmethod
    def unsupported_type(cls, error: str = "Unsupported file type") -> "Result[T]":
        """
        Create a failed Result for an upload that is not an Excel workbook.

        Returns:
            Result[T]: A failed Result with 415 status code
        """
        return cls(success=False, error=error, status_code=HTTPStatus.UNSUPPORTED_MEDIA_TYPE)

    @classmethod
    def server_error(cls, error: str = "Internal server error") -> "Result[T]":
        """
        Create a failed Result with INTERNAL_SERVER_ERROR status code.

        Returns:
            Result[T]: A failed Result with 500 status code
        """
        return cls(success=False, error=error, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)

    def is_success(self) -> bool:
        return self.success

    def is_failure(self) -> bool:
        return not self.success

    def unwrap(self, default: Optional[T] = None) -> Optional[T]:
        """
        Safely access the data value with an optional default value.

        Args:
            default (Optional[T], optional): Value to return if the Result is a failure. Defaults to None.

        Returns:
            Optional[T]: The data value if successful, otherwise the default value
        """
        return self.data if self.is_success() else default

    def and_then(self, fn: Callable[[T], "Result[U]"]) -> "Result[U]":
        """
        Chain a step that itself returns a Result.

        A failure short-circuits: the error and status code are carried over and
        ``fn`` is never called.

        Args:
            fn (Callable[[T], Result[U]]): Next step, receiving this Result's data

        Returns:
            Result[U]: Either the original failure or the Result of the next step
        """
        if not self.is_success():
            return Result.fail(self.error or "", status_code=self.status_code)  # type: ignore
        return fn(self.data)  # type: ignore

    def __str__(self) -> str:
        status_info = f"{self.status_code.value} {self.status_code.phrase}"
        if self.is_success():
            data_repr = str(self.data)
            # Truncate long data representations
            if len(data_repr) > 100:
                data_repr = f"{data_repr[:97]}..."
            return f"Success ({status_info}): {data_repr}"
        return f"Failure ({status_info}): {self.error}"

    def __repr__(self) -> str:
        return f"Result(success={self.success}, status_code={self.status_code!r}, data={self.data!r}, error={self.error!r})"
