from genr8.services.providers.kie_jobs import KieJobsAdapter


class SoraAdapter(KieJobsAdapter):
    model_id = "sora-2"
    media_type = "video"

    def kie_model(self, options: dict) -> str:
        # "standard" is 720p and "high" is 1080p; both only exist on the pro model
        if options.get("size"):
            return "sora-2-pro-text-to-video"
        return "sora-2-text-to-video"

    def build_input(self, prompt: str, options: dict) -> dict:
        data = {
            "prompt": prompt,
            "aspect_ratio": options.get("aspect_ratio", "landscape"),
            "n_frames": str(options.get("n_frames", "10")),
            "remove_watermark": options.get("remove_watermark", True),
        }
        if options.get("size"):
            data["size"] = options["size"]
        return data
