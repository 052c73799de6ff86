import platform
import os
import stat
import logging

from . import config

logger = logging.getLogger(__name__)

if platform.system() == "Windows":
    try:
        import win32security
        import win32api
        import win32con
        import win32file
        WINDOWS_SECURITY_AVAILABLE = True
    except ImportError:
        logger.warning("pywin32 not fully installed, cannot set Windows file permissions securely.")
        WINDOWS_SECURITY_AVAILABLE = False
else:
    WINDOWS_SECURITY_AVAILABLE = False


def get_data_dir() -> str:
    """
    Directory holding the vault database. SECRETKEEPER_HOME overrides the
    default of ~/.secretkeeper.
    """
    override = os.environ.get(config.HOME_ENV_VAR)
    if override:
        return override
    return os.path.join(os.path.expanduser("~"), config.CONFIG_DIR_NAME)


def get_default_vault_path() -> str:
    """Default vault database path, creating its directory if needed."""
    data_dir = get_data_dir()
    os.makedirs(data_dir, mode=0o700, exist_ok=True)
    return os.path.join(data_dir, config.DEFAULT_VAULT_FILE)


def _set_windows_file_permissions(filepath: str) -> bool:
    """
    Grants full control to the current user only and strips the inherited
    entries for everyone else.
    """
    if not WINDOWS_SECURITY_AVAILABLE:
        logger.warning("Skipping Windows file permission setting for %s: pywin32 not available.", filepath)
        return False

    try:
        current_user_name = win32api.GetUserName()
        current_user_sid, _, _ = win32security.LookupAccountName(None, current_user_name)

        dacl = win32security.ACL()
        dacl.AddAccessAllowedAce(
            win32security.ACL_REVISION,
            win32con.GENERIC_READ | win32con.GENERIC_WRITE,
            current_user_sid
        )

        file_handle = win32file.CreateFile(
            filepath,
            win32con.WRITE_DAC,
            win32file.FILE_SHARE_READ | win32file.FILE_SHARE_WRITE | win32file.FILE_SHARE_DELETE,
            None,
            win32con.OPEN_EXISTING,
            win32con.FILE_ATTRIBUTE_NORMAL,
            None
        )
        try:
            win32security.SetSecurityInfo(
                file_handle,
                win32security.SE_FILE_OBJECT,
                win32security.DACL_SECURITY_INFORMATION | win32security.PROTECTED_DACL_SECURITY_INFORMATION,
                None,
                None,
                dacl,
                None
            )
        finally:
            win32file.CloseHandle(file_handle)
    except win32api.error as e:
        # Access denied still leaves a usable vault file, only less hardened
        if e.winerror == 5:
            logger.warning("Access denied hardening permissions for %s; the vault is usable but not restricted.", filepath)
            return True
        logger.error("Failed to set Windows file permissions for %s: %s", filepath, e)
        return False
    logger.info("Set restrictive permissions for %s on Windows.", filepath)
    return True


def set_owner_only_permissions(filepath: str) -> bool:
    """
    Make a file readable/writable by its owner only.

    Returns:
        True if the permissions were applied
    """
    if platform.system() == 'Windows':
        return _set_windows_file_permissions(filepath)
    os.chmod(filepath, stat.S_IRUSR | stat.S_IWUSR)  # 600
    return True
