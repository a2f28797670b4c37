"""Homebrew formula generation.

The formula is regenerated from scratch on every release and never patched.
It installs the release's installer script, which is fetched from the GitHub
release of ``tag_name`` and verified against its SHA-256.
"""

from __future__ import annotations

from relpub.core.config import FormulaConfig

__all__ = ["build_manifest"]


def _ruby_str(value: str) -> str:
    """Escape for a double-quoted Ruby literal, where `#{...}` would interpolate."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("#", "\\#")


def _service_block(command: str, log_dir: str) -> str:
    return f"""
  def plist; <<~EOS
<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
    <key>Label</key>
    <string>#{{plist_name}}</string>
    <key>ProgramArguments</key>
    <array>
        <string>#{{bin}}/{command}</string>
    </array>
    <key>KeepAlive</key>
    <true/>
    <key>StandardOutPath</key>
    <string>#{{var}}/log/{log_dir}/{log_dir}.out.log</string>
    <key>StandardErrorPath</key>
    <string>#{{var}}/log/{log_dir}/{log_dir}.err.log</string>
</dict>
</plist>
    EOS
  end
"""


def build_manifest(
    version: str,
    tag_name: str,
    artifact_digest: str,
    formula: FormulaConfig,
) -> str:
    """Formula text for ``version``, downloading the installer from ``tag_name``.

    Args:
        version: Release version, e.g. "1.2.3"
        tag_name: Release tag the installer was uploaded under, e.g. "v1.2.3"
        artifact_digest: Lowercase hex SHA-256 of the installer
        formula: Per-project formula fields
    """
    name = formula.class_name.lower()
    service = _service_block(formula.service_command, name) if formula.service_command else ""
    return f"""class {formula.class_name} < Formula
  desc "{_ruby_str(formula.description)}"
  homepage "{_ruby_str(formula.homepage)}"
  version "{_ruby_str(version)}"
  url "{_ruby_str(formula.download_url(tag_name))}"
  sha256 "{artifact_digest}"
  bottle :unneeded

  depends_on "python3"
  depends_on :java => "1.8+"

  def install
      mkdir "bin"
      system "python3", "{_ruby_str(formula.artifact)}", "--dest", "bin", "--version", version
      zsh_completion.install "bin/zsh/_{name}"
      bash_completion.install "bin/bash/{name}"
      FileUtils.mkdir_p("log/{name}/")
      FileUtils.chmod_R 0777, "log"

      prefix.install "bin"
      prefix.install "log"
  end
{service}
  test do
  end
end
"""
