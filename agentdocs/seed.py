# agentdocs/seed.py
"""
Seed the demo catalog.

Usage:
  python -m agentdocs.seed

Use cases and services are upserted by slug; a snippet is only created when
its (use case, service) pair has none yet, so the script can be rerun.
"""

from typing import Any, Dict

from agentdocs import db as dbmod
from agentdocs import monitoring
from agentdocs.catalog import CatalogService

USE_CASES = [
    {"slug": "transcription", "name": "Audio/Video Transcription",
     "description": "Convert speech to text from audio or video files", "icon": "🎙️"},
    {"slug": "email-sending", "name": "Email Sending",
     "description": "Send transactional or marketing emails programmatically", "icon": "📧"},
    {"slug": "image-generation", "name": "Image Generation",
     "description": "Generate images from text prompts using AI", "icon": "🎨"},
]

SERVICES = [
    {"slug": "deepgram", "name": "Deepgram", "website": "https://deepgram.com",
     "docs_url": "https://developers.deepgram.com/docs"},
    {"slug": "openai-whisper", "name": "OpenAI Whisper", "website": "https://openai.com",
     "docs_url": "https://platform.openai.com/docs/guides/speech-to-text"},
    {"slug": "assemblyai", "name": "AssemblyAI", "website": "https://assemblyai.com",
     "docs_url": "https://www.assemblyai.com/docs"},
    {"slug": "resend", "name": "Resend", "website": "https://resend.com",
     "docs_url": "https://resend.com/docs"},
    {"slug": "sendgrid", "name": "SendGrid", "website": "https://sendgrid.com",
     "docs_url": "https://docs.sendgrid.com"},
    {"slug": "replicate", "name": "Replicate", "website": "https://replicate.com",
     "docs_url": "https://replicate.com/docs"},
]

DEEPGRAM_CODE = '''import { createClient } from "@deepgram/sdk";
import { readFileSync } from "fs";

const deepgram = createClient(process.env.DEEPGRAM_API_KEY);

async function transcribe(audioPath: string) {
  const audio = readFileSync(audioPath);
  const { result } = await deepgram.listen.prerecorded.transcribeFile(audio, {
    model: "nova-2",
    smart_format: true,
    language: "en",
  });
  return result.results.channels[0].alternatives[0].transcript;
}
'''

WHISPER_CODE = '''import OpenAI from "openai";
import { createReadStream } from "fs";

const openai = new OpenAI({ apiKey: process.env.OPENAI_API_KEY });

async function transcribe(audioPath: string) {
  const transcription = await openai.audio.transcriptions.create({
    file: createReadStream(audioPath),
    model: "whisper-1",
    language: "en",
  });
  return transcription.text;
}
'''

RESEND_CODE = '''import { Resend } from "resend";

const resend = new Resend(process.env.RESEND_API_KEY);

async function sendEmail(to: string, subject: string, html: string) {
  const { data, error } = await resend.emails.send({
    from: "onboarding@resend.dev",
    to,
    subject,
    html,
  });
  if (error) throw error;
  return data;
}
'''

SENDGRID_CODE = '''import sgMail from "@sendgrid/mail";

sgMail.setApiKey(process.env.SENDGRID_API_KEY);

async function sendEmail(to: string, subject: string, html: string) {
  const [response] = await sgMail.send({ to, from: "sender@example.com", subject, html });
  return response;
}
'''

REPLICATE_CODE = '''import Replicate from "replicate";

const replicate = new Replicate({ auth: process.env.REPLICATE_API_TOKEN });

async function generateImage(prompt: string) {
  const output = await replicate.run("stability-ai/sdxl", {
    input: { prompt, width: 1024, height: 1024, num_outputs: 1 },
  });
  return output as string[];
}
'''

# (snippet fields, benchmark results)
SNIPPETS = [
    ({"use_case_slug": "transcription", "service_slug": "deepgram", "language": "typescript",
      "title": "Transcribe audio file with Deepgram",
      "description": "Simple audio transcription using Deepgram's Nova-2 model",
      "code": DEEPGRAM_CODE, "dependencies": ["@deepgram/sdk@3.0.0"], "env_vars": ["DEEPGRAM_API_KEY"],
      "source_url": "https://developers.deepgram.com/docs/getting-started"},
     {"latency_ms": 850, "cost_usd": 0.0043, "quality_score": 94}),
    ({"use_case_slug": "transcription", "service_slug": "openai-whisper", "language": "typescript",
      "title": "Transcribe audio with OpenAI Whisper",
      "description": "Audio transcription using OpenAI's Whisper model",
      "code": WHISPER_CODE, "dependencies": ["openai@4.0.0"], "env_vars": ["OPENAI_API_KEY"],
      "source_url": "https://platform.openai.com/docs/guides/speech-to-text"},
     {"latency_ms": 1200, "cost_usd": 0.006, "quality_score": 92}),
    ({"use_case_slug": "email-sending", "service_slug": "resend", "language": "typescript",
      "title": "Send email with Resend",
      "description": "Simple email sending with Resend's modern API",
      "code": RESEND_CODE, "dependencies": ["resend@3.0.0"], "env_vars": ["RESEND_API_KEY"],
      "source_url": "https://resend.com/docs/send-with-nodejs"},
     {"latency_ms": 180, "cost_usd": 0.0001, "quality_score": 98}),
    ({"use_case_slug": "email-sending", "service_slug": "sendgrid", "language": "typescript",
      "title": "Send email with SendGrid",
      "description": "Email sending with SendGrid's Node.js library",
      "code": SENDGRID_CODE, "dependencies": ["@sendgrid/mail@8.0.0"], "env_vars": ["SENDGRID_API_KEY"],
      "source_url": "https://docs.sendgrid.com/for-developers/sending-email/quickstart-nodejs"},
     {"latency_ms": 220, "cost_usd": 0.00015, "quality_score": 95}),
    ({"use_case_slug": "image-generation", "service_slug": "replicate", "language": "typescript",
      "title": "Generate image with Replicate SDXL",
      "description": "Text-to-image generation using Stable Diffusion XL on Replicate",
      "code": REPLICATE_CODE, "dependencies": ["replicate@0.25.0"], "env_vars": ["REPLICATE_API_TOKEN"],
      "source_url": "https://replicate.com/stability-ai/sdxl"},
     {"latency_ms": 12000, "cost_usd": 0.0023, "quality_score": 88}),
]


def seed_catalog(catalog: CatalogService) -> Dict[str, Any]:
    use_case_ids = {uc["slug"]: catalog.upsert_use_case(uc) for uc in USE_CASES}
    service_ids = {svc["slug"]: catalog.upsert_service(svc) for svc in SERVICES}

    created = 0
    for fields, bench in SNIPPETS:
        existing = catalog.store.snippets_by_use_case_and_service(
            use_case_ids[fields["use_case_slug"]], service_ids[fields["service_slug"]]
        )
        if existing:
            continue
        snippet_id = catalog.create_snippet(fields)
        catalog.update_verification_status(snippet_id, "passed", **bench)
        created += 1

    return {"use_cases": len(use_case_ids), "services": len(service_ids), "snippets": created}


if __name__ == "__main__":
    dbmod.init_db()
    summary = seed_catalog(CatalogService())
    monitoring.logger.info("Demo catalog seeded", extra=summary)
