# neopresence

Discord rich presence for Neovim. neopresence runs as a small language
server: Neovim starts it, sends it the usual open and change
notifications, and it shows on your Discord profile which file you are
editing, together with how many lines you have added and deleted, and in
how many files, since the session began.

## Installation

```
pip install .
```

This installs the `neopresence` command. It has no third-party
dependencies. It needs a Discord desktop client running on the same
machine, which it reaches over Discord's local IPC endpoint (a Unix
socket named `discord-ipc-0` … `discord-ipc-9` under `XDG_RUNTIME_DIR`,
`TMPDIR`, `TMP`, `TEMP` or `/tmp`, including the Flatpak and Snap
locations; a named pipe on Windows).

## Using it from Neovim

Register `neopresence` as a language server. For example, with the
built-in LSP client:

```lua
vim.api.nvim_create_autocmd("BufEnter", {
  callback = function()
    vim.lsp.start({
      name = "neopresence",
      cmd = { "neopresence" },
      root_dir = vim.fn.getcwd(),
    })
  end,
})
```

Options:

- `--client-id ID` – the Discord application id to publish the presence
  under (a built-in default is used otherwise).

The server answers `initialize` asking for full-document sync. Every five
seconds it pushes an activity to Discord with:

- details: `Editing <file name>`, or `Idling` before any file is opened;
- state: `<n> additions, <m> deletions in <k> files`;
- the time the session started;
- the `nvim` large image.

Buffers whose language id is `cmp_docs`, `cmp_menu`, `TelescopePrompt`
or `TelescopeResults` are ignored. When Neovim sends `shutdown`, or
closes standard input, the server exits with status 0. If the incoming
stream breaks the Content-Length framing, the server prints the error to
standard error and exits with status 1. A `didChange` notification it
cannot read is reported back to the editor as a `window/logMessage`
error and otherwise skipped.

If Discord is not running or the connection drops, the server waits five
seconds and tries to connect again; editing is never interrupted.

## How changes are counted

For each file changed in the session, the first contents received are
kept as the baseline (`neopresence.session.FileData`). The latest
contents are compared with that baseline line by line using a
shortest-edit-script diff, `neopresence.diff.get_diff(old, new)`, which
returns `(deletions, additions)`. `neopresence.session.construct_data`
sums these over all files into a `neopresence.discord.DiscordData`.

## Library pieces

- `neopresence.protocol` – `read_message` and `send` for Content-Length
  framed messages; `ProtocolError` for malformed input.
- `neopresence.logger` – `log` sends a `window/logMessage` notification
  with a `MessageType`; `log_to_file` appends a line to an existing file.
- `neopresence.nvim` – decoding of `initialize`, `textDocument/didOpen`,
  `textDocument/didChange` and `shutdown` into `FileOpened`,
  `FileChanged` and `Shutdown` events.
- `neopresence.discord` – `DiscordIpcClient` (`start`, `set_activity`,
  `close`), `format_activity` and the `discord_runner` coroutine.
- `neopresence.session` – `SessionState`, `update_file_contents`,
  `construct_data`, `clamp`, and `get_remote_url` / `parse_remote_url`,
  which turn the repository's `origin` remote into an https URL.
- `neopresence.app` – `run`, the coroutine that ties it together, and
  `main`, the command.

## What it does not do

The session records a `remote_url` field and the package can work out
the repository's remote URL, but the running server never fills it in
and the Discord activity does not show it: no repository link or button
appears on the profile. Language detection beyond the file name is not
done either.

## Running the tests

```
pip install ".[test]"
pytest
```