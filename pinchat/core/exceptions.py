# pinchat/core/exceptions.py

from fastapi import HTTPException, status

# Base Exception
class BaseAPIException(HTTPException):
    """Base class for all custom API exceptions."""
    def __init__(self, status_code: int, detail: str, headers: dict = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


# Authentication & Authorization Exceptions
class InvalidCredentialsException(BaseAPIException):
    """Exception raised when a username/PIN or room PIN does not match."""
    def __init__(self, detail="Invalid username or PIN."):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

class NotAuthenticatedException(BaseAPIException):
    """Exception raised when a request carries no valid session."""
    def __init__(self, detail="Not authenticated. Please log in."):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

class UserAlreadyExistsException(BaseAPIException):
    """Exception raised when a username is already taken."""
    def __init__(self, detail="Username already exists. Please choose a different one."):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class WeakCredentialException(BaseAPIException):
    """Exception raised when a username or PIN is too short."""
    def __init__(self, detail="Username must be at least 3 characters and PIN at least 4 characters."):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class UnauthorizedAccessException(BaseAPIException):
    """Exception raised for unauthorized access attempts."""
    def __init__(self, detail="Access denied"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


# User Exceptions
class UserNotFoundException(BaseAPIException):
    """Exception raised when a user is not found."""
    def __init__(self, detail="User not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


# Room & Chat Exceptions
class RoomNotFoundException(BaseAPIException):
    """Exception raised when a room is not found."""
    def __init__(self, detail="Chat room not found."):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

class RoomAlreadyExistsException(BaseAPIException):
    """Exception raised when a room with the same name already exists."""
    def __init__(self, detail="Chat room with this name already exists."):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class MessageNotSentException(BaseAPIException):
    """Exception raised when a message fails to send."""
    def __init__(self, detail="Failed to send message."):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


# Image Exceptions
class UnsupportedImageTypeException(BaseAPIException):
    """Exception raised when an upload is not a decodable image."""
    def __init__(self, detail="Only image files are allowed!"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class ImageTooLargeException(BaseAPIException):
    """Exception raised when an upload exceeds the size ceiling."""
    def __init__(self, detail="Image exceeds the 5MB limit."):
        super().__init__(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=detail)

class ImageProcessingException(BaseAPIException):
    """Exception raised when transcoding an image fails."""
    def __init__(self, detail="Error processing image"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


# Validation & Input Exceptions
class InvalidInputException(BaseAPIException):
    """Exception raised when input data is invalid."""
    def __init__(self, detail="Invalid input data"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


# Database & System Exceptions
class InternalServerErrorException(BaseAPIException):
    """Exception raised for internal server errors."""
    def __init__(self, detail="Internal server error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
