"""
HTML pages for the browser flow: upload form, result, error.
"""

from html import escape

_HEAD = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <script src="https://cdn.tailwindcss.com"></script>
  <style>
    body {{ background-color: #0f0f10; background-image: radial-gradient(circle at center, #1f1f22 0%, #000 100%); color: white; }}
    .glass {{ background: rgba(255, 255, 255, 0.05); backdrop-filter: blur(10px); border: 1px solid rgba(255, 255, 255, 0.1); }}
  </style>
</head>
<body class="min-h-screen flex flex-col items-center justify-center p-4">
"""

_FOOT = """</body>
</html>
"""

_FORM_BODY = """
  <div class="glass w-full max-w-lg rounded-3xl p-8 shadow-2xl">
    <div class="text-center mb-8">
      <div class="inline-flex items-center justify-center w-16 h-16 bg-yellow-500/10 rounded-2xl mb-4 border border-yellow-500/20">
        <span class="text-yellow-400 font-black text-2xl">4K</span>
      </div>
      <h1 class="text-2xl font-bold">Poster Enhancer</h1>
      <p class="text-zinc-500 text-sm mt-2">Upload or paste a URL to add the 4K badge</p>
    </div>

    <form action="/generate" method="POST" enctype="multipart/form-data" class="space-y-6">
      <div class="flex bg-zinc-900/50 p-1 rounded-xl">
        <button type="button" onclick="toggleInput('file')" id="btnFile" class="flex-1 py-2 text-sm rounded-lg bg-zinc-800">Upload File</button>
        <button type="button" onclick="toggleInput('url')" id="btnUrl" class="flex-1 py-2 text-sm rounded-lg text-zinc-400">Image URL</button>
      </div>

      <div id="fileInput">
        <input type="file" name="file" accept="image/*" class="w-full text-sm text-zinc-400">
      </div>

      <div id="urlInput" class="hidden">
        <input type="url" name="url" placeholder="https://example.com/poster.jpg"
               class="w-full bg-zinc-900/50 border border-zinc-700 rounded-xl py-3 px-4 text-sm">
      </div>

      <button type="submit" class="w-full bg-yellow-500 hover:bg-yellow-400 text-black font-bold py-3.5 rounded-xl">
        Generate Poster
      </button>
    </form>
  </div>

  <script>
    function toggleInput(type) {
      const file = type === 'file';
      document.getElementById('fileInput').classList.toggle('hidden', !file);
      document.getElementById('urlInput').classList.toggle('hidden', file);
      document.getElementById('btnFile').classList.toggle('bg-zinc-800', file);
      document.getElementById('btnUrl').classList.toggle('bg-zinc-800', !file);
    }
  </script>
"""

_RESULT_BODY = """
  <div class="max-w-4xl w-full text-center">
    <h2 class="text-3xl font-bold text-yellow-500 mb-6">Poster Ready!</h2>
    <div class="relative inline-block rounded-xl overflow-hidden shadow-2xl border border-zinc-800 mb-8">
      <img src="{data_uri}" alt="4K Poster" class="max-h-[60vh] w-auto object-contain">
    </div>
    <div class="flex gap-4 justify-center">
      <a href="/" class="px-6 py-3 rounded-xl bg-zinc-800 text-white font-medium">Create New</a>
      <a href="{data_uri}" download="{filename}" class="px-8 py-3 rounded-xl bg-yellow-500 text-black font-bold">Download</a>
    </div>
  </div>
"""

_ERROR_BODY = """
  <div class="glass w-full max-w-lg rounded-3xl p-8 text-center">
    <h2 class="text-xl font-bold text-red-400 mb-4">Error</h2>
    <p class="text-zinc-300 mb-6">{message}</p>
    <a href="/" class="underline text-white">Try Again</a>
  </div>
"""

DOWNLOAD_FILENAME = "4k-poster-enhanced.jpg"


def render_form_page() -> str:
    return _HEAD.format(title="4K Poster Generator") + _FORM_BODY + _FOOT


def render_result_page(data_uri: str) -> str:
    body = _RESULT_BODY.format(data_uri=escape(data_uri), filename=DOWNLOAD_FILENAME)
    return _HEAD.format(title="Result") + body + _FOOT


def render_error_page(message: str) -> str:
    return _HEAD.format(title="Error") + _ERROR_BODY.format(message=escape(message)) + _FOOT
