"""
Raw libmonado bindings.

Declares the libmonado C API to cffi (ABI mode) and loads the shared
library at run time. Nothing here is linked at build time; every symbol is
resolved from the library handed to MonadoApi.load().
"""

from typing import Any, Optional, Union
import logging

from cffi import FFI

from .models import MndResult, Version

logger = logging.getLogger(__name__)


# Declarations mirror monado.h for API version 1.3
MONADO_CDEF = """
typedef enum mnd_result {
    MND_SUCCESS = 0,
    MND_ERROR_INVALID_VERSION = -1,
    MND_ERROR_INVALID_VALUE = -2,
    MND_ERROR_CONNECTING_FAILED = -3,
    MND_ERROR_OPERATION_FAILED = -4,
    MND_ERROR_RECENTERING_NOT_SUPPORTED = -5,
    MND_ERROR_INVALID_PROPERTY = -6
} mnd_result_t;

typedef enum mnd_property {
    MND_PROPERTY_NAME_STRING = 1,
    MND_PROPERTY_SERIAL_STRING = 2
} mnd_property_t;

typedef enum mnd_reference_space_type {
    MND_SPACE_REFERENCE_TYPE_VIEW = 0,
    MND_SPACE_REFERENCE_TYPE_LOCAL = 1,
    MND_SPACE_REFERENCE_TYPE_LOCAL_FLOOR = 2,
    MND_SPACE_REFERENCE_TYPE_STAGE = 3,
    MND_SPACE_REFERENCE_TYPE_UNBOUNDED = 4
} mnd_reference_space_type_t;

typedef struct mnd_quaternion {
    float x;
    float y;
    float z;
    float w;
} mnd_quaternion_t;

typedef struct mnd_vector3 {
    float x;
    float y;
    float z;
} mnd_vector3_t;

typedef struct mnd_pose {
    mnd_quaternion_t orientation;
    mnd_vector3_t position;
} mnd_pose_t;

typedef struct mnd_root mnd_root_t;

void mnd_api_get_version(uint32_t *out_major, uint32_t *out_minor, uint32_t *out_patch);

mnd_result_t mnd_root_create(mnd_root_t **out_root);
void mnd_root_destroy(mnd_root_t **root_ptr);

mnd_result_t mnd_root_update_client_list(mnd_root_t *root);
mnd_result_t mnd_root_get_number_clients(mnd_root_t *root, uint32_t *out_num);
mnd_result_t mnd_root_get_client_id_at_index(mnd_root_t *root, uint32_t index, uint32_t *out_client_id);
mnd_result_t mnd_root_get_client_name(mnd_root_t *root, uint32_t client_id, const char **out_name);
mnd_result_t mnd_root_get_client_state(mnd_root_t *root, uint32_t client_id, uint32_t *out_flags);
mnd_result_t mnd_root_set_client_primary(mnd_root_t *root, uint32_t client_id);
mnd_result_t mnd_root_set_client_focused(mnd_root_t *root, uint32_t client_id);
mnd_result_t mnd_root_toggle_client_io_active(mnd_root_t *root, uint32_t client_id);

mnd_result_t mnd_root_get_device_count(mnd_root_t *root, uint32_t *out_device_count);
mnd_result_t mnd_root_get_device_info(mnd_root_t *root, uint32_t device_index, uint32_t *out_device_id, const char **out_dev_name);
mnd_result_t mnd_root_get_device_from_role(mnd_root_t *root, const char *role_name, int32_t *out_index);
mnd_result_t mnd_root_get_device_info_bool(mnd_root_t *root, uint32_t device_index, mnd_property_t prop, bool *out_bool);
mnd_result_t mnd_root_get_device_info_i32(mnd_root_t *root, uint32_t device_index, mnd_property_t prop, int32_t *out_i32);
mnd_result_t mnd_root_get_device_info_u32(mnd_root_t *root, uint32_t device_index, mnd_property_t prop, uint32_t *out_u32);
mnd_result_t mnd_root_get_device_info_float(mnd_root_t *root, uint32_t device_index, mnd_property_t prop, float *out_float);
mnd_result_t mnd_root_get_device_info_string(mnd_root_t *root, uint32_t device_index, mnd_property_t prop, const char **out_string);
mnd_result_t mnd_root_get_device_battery_status(mnd_root_t *root, uint32_t device_index, bool *out_present, bool *out_charging, float *out_charge);
mnd_result_t mnd_root_get_device_brightness(mnd_root_t *root, uint32_t device_index, float *out_brightness);
mnd_result_t mnd_root_set_device_brightness(mnd_root_t *root, uint32_t device_index, float brightness, bool relative);

mnd_result_t mnd_root_recenter_local_spaces(mnd_root_t *root);
mnd_result_t mnd_root_get_reference_space_offset(mnd_root_t *root, mnd_reference_space_type_t type, mnd_pose_t *out_offset);
mnd_result_t mnd_root_set_reference_space_offset(mnd_root_t *root, mnd_reference_space_type_t type, const mnd_pose_t *offset);

mnd_result_t mnd_root_get_tracking_origin_count(mnd_root_t *root, uint32_t *out_count);
mnd_result_t mnd_root_get_tracking_origin_name(mnd_root_t *root, uint32_t origin_id, const char **out_string);
mnd_result_t mnd_root_get_tracking_origin_offset(mnd_root_t *root, uint32_t origin_id, mnd_pose_t *out_offset);
mnd_result_t mnd_root_set_tracking_origin_offset(mnd_root_t *root, uint32_t origin_id, const mnd_pose_t *offset);
"""

ffi = FFI()
ffi.cdef(MONADO_CDEF)

# Every symbol the wrapper calls; all must resolve for a load to succeed
REQUIRED_SYMBOLS = (
    "mnd_api_get_version",
    "mnd_root_create",
    "mnd_root_destroy",
    "mnd_root_update_client_list",
    "mnd_root_get_number_clients",
    "mnd_root_get_client_id_at_index",
    "mnd_root_get_client_name",
    "mnd_root_get_client_state",
    "mnd_root_set_client_primary",
    "mnd_root_set_client_focused",
    "mnd_root_toggle_client_io_active",
    "mnd_root_get_device_count",
    "mnd_root_get_device_info",
    "mnd_root_get_device_from_role",
    "mnd_root_get_device_info_bool",
    "mnd_root_get_device_info_i32",
    "mnd_root_get_device_info_u32",
    "mnd_root_get_device_info_float",
    "mnd_root_get_device_info_string",
    "mnd_root_get_device_battery_status",
    "mnd_root_get_device_brightness",
    "mnd_root_set_device_brightness",
    "mnd_root_recenter_local_spaces",
    "mnd_root_get_reference_space_offset",
    "mnd_root_set_reference_space_offset",
    "mnd_root_get_tracking_origin_count",
    "mnd_root_get_tracking_origin_name",
    "mnd_root_get_tracking_origin_offset",
    "mnd_root_set_tracking_origin_offset",
)

# API versions this package can talk to (caret requirement ^1.3.0)
REQUIRED_API_VERSION = Version(1, 3, 0)


class MonadoError(Exception):
    """Base exception for libmonado errors."""
    pass


class MonadoResultError(MonadoError):
    """
    Raised when a libmonado call reports a failure.

    Attributes:
        code: Raw result code returned by the library
        result: Matching MndResult, or None for codes this package doesn't know
        function: Name of the failing C function, if known
    """

    def __init__(self, result: Union[MndResult, int], function: Optional[str] = None):
        self.code = int(result)
        try:
            self.result: Optional[MndResult] = MndResult(self.code)
        except ValueError:
            self.result = None
        self.function = function

        label = self.result.name if self.result is not None else f"unknown result {self.code}"
        if function:
            super().__init__(f"{function} failed: {label}")
        else:
            super().__init__(label)


def check_result(code: int, function: Optional[str] = None) -> None:
    """
    Raise MonadoResultError unless code is MND_SUCCESS.

    Args:
        code: Result code returned by a libmonado call
        function: Name of the called function, for the error message
    """
    if code != MndResult.SUCCESS:
        raise MonadoResultError(code, function)


class MonadoApi:
    """
    A loaded libmonado library.

    Wraps the cffi library object together with the FFI instance its
    pointers are allocated from. Anything exposing the mnd_* callables
    can stand in for the library (see libmonado.simulation).
    """

    def __init__(self, lib: Any, path: str = ""):
        self.lib = lib
        self.ffi = ffi
        self.path = path

    @classmethod
    def load(cls, path: str) -> 'MonadoApi':
        """
        Load libmonado from a shared library path.

        Args:
            path: Filesystem path (or loader name) of libmonado

        Returns:
            The loaded API

        Raises:
            MonadoResultError: ERROR_CONNECTING_FAILED if the library can't be
                opened or lacks one of the required symbols
        """
        path = str(path)
        try:
            lib = ffi.dlopen(path)
        except OSError as e:
            logger.error(f"Failed to load libmonado from {path}: {e}")
            raise MonadoResultError(MndResult.ERROR_CONNECTING_FAILED, "dlopen") from e

        missing = []
        for symbol in REQUIRED_SYMBOLS:
            try:
                getattr(lib, symbol)
            except AttributeError:
                missing.append(symbol)
        if missing:
            logger.error(f"{path} is missing symbols: {', '.join(missing)}")
            raise MonadoResultError(MndResult.ERROR_CONNECTING_FAILED, "dlsym")

        logger.debug(f"Loaded libmonado from {path}")
        return cls(lib, path)

    def call(self, function: str, *args: Any) -> None:
        """Call an mnd_* function that returns mnd_result_t and check it."""
        check_result(getattr(self.lib, function)(*args), function)

    def version(self) -> Version:
        """Read the API version the library implements."""
        major = ffi.new("uint32_t *")
        minor = ffi.new("uint32_t *")
        patch = ffi.new("uint32_t *")
        self.lib.mnd_api_get_version(major, minor, patch)
        return Version(major[0], minor[0], patch[0])

    def is_supported(self) -> bool:
        """Check the library version against REQUIRED_API_VERSION."""
        return self.version().matches_caret(REQUIRED_API_VERSION)
