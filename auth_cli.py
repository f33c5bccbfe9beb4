import logging
from typing import Callable, Optional

from rich.console import Console
from rich.prompt import Prompt

from errors import InvalidCodeError, StorageError, TokenExchangeFailedError
from oauth import OAuthSessionManager

logger = logging.getLogger(__name__)

console = Console()


class CLIAuthFlow:
    """Handle OAuth authentication flow in the terminal"""

    def __init__(
        self,
        session_manager: Optional[OAuthSessionManager] = None,
        read_code: Callable[[str], str] = input,
        out: Console = console,
    ):
        self.session_manager = session_manager or OAuthSessionManager()
        self.read_code = read_code
        self.console = out

    async def authenticate(self, max_attempts: int = 2) -> bool:
        """
        Run the OAuth authentication flow
        Returns True if successful, False otherwise
        """
        # Step 1: Generate auth URL and open browser
        self.console.print("\n[bold]Step 1:[/bold] Opening browser for authentication...")
        result = await self.session_manager.start_flow()

        if result.already_authenticated:
            self.console.print(f"[green][OK][/green] {result.instructions}")
            return True

        self.console.print(result.instructions)
        self.console.print(f"If the browser did not open, visit:\n{result.url}")

        # Step 2: Get code from user, retrying without reopening the browser
        for attempt in range(1, max_attempts + 1):
            self.console.print("\n[bold]Step 2:[/bold] Paste the authorization code below")
            self.console.print("[dim]The code should look like: CODE#STATE[/dim]\n")

            try:
                code = self.read_code("Authorization code: ")
            except (KeyboardInterrupt, EOFError):
                self.console.print("\n[yellow]Authentication cancelled by user[/yellow]")
                self.session_manager.cancel_flow()
                return False

            # Step 3: Exchange code for tokens
            self.console.print("\n[bold]Step 3:[/bold] Exchanging code for tokens...")
            try:
                await self.session_manager.complete_flow(code)
            except (InvalidCodeError, TokenExchangeFailedError) as e:
                self.console.print(f"[red][ERROR][/red] {e}")
                if attempt < max_attempts:
                    retry = Prompt.ask("\nWould you like to try again?", choices=["y", "n"], default="y")
                    if retry.lower() == "y":
                        continue
                self.session_manager.cancel_flow()
                return False
            except StorageError as e:
                self.console.print(f"[red][ERROR][/red] {e}")
                return False

            self.console.print("[green][OK][/green] Authentication successful!")
            self.show_status()
            return True

        return False

    def show_status(self):
        """Print the stored credential status"""
        status = self.session_manager.get_status()
        if not status["has_credential"]:
            self.console.print("[yellow]Not authenticated[/yellow]")
            return

        if status["type"] == "api":
            self.console.print("Using a stored API key")
            return

        if status["is_expired"]:
            self.console.print(f"[yellow]OAuth token expired {status['time_until_expiry']}[/yellow] (refreshed on next use)")
        else:
            self.console.print(f"OAuth token valid for: {status['time_until_expiry']}")
        self.console.print(f"Token expires at: {status['expires_at']}")

    def logout(self):
        """Remove stored credentials"""
        self.session_manager.logout()
        self.console.print("[green][OK][/green] Logged out")
